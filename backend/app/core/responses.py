"""
Response envelope shared by every endpoint.

Success:
    {"status": "success", "success": true, "message": ..., "data": ..., "statusCode": 200}

Error:
    {"status": "error", "success": false, "message": ..., "errors": ..., "statusCode": 404}
"""
from typing import Any, Dict, Optional

from fastapi import status as http_status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(
    data: Any = None,
    message: str = "Success",
    status_code: int = http_status.HTTP_200_OK,
) -> Dict[str, Any]:
    """Build a success envelope.

    ``data`` may contain pydantic models; they are serialized by alias so the
    wire format stays camelCase.
    """
    body: Dict[str, Any] = {
        "status": "success",
        "success": True,
        "message": message,
    }
    if data is not None:
        body["data"] = jsonable_encoder(data, by_alias=True)
    body["statusCode"] = status_code
    return body


def error_response(
    message: str = "An error occurred",
    status_code: int = http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    errors: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
    **extra: Any,
) -> JSONResponse:
    """Build an error envelope as a JSONResponse."""
    body: Dict[str, Any] = {
        "status": "error",
        "success": False,
        "message": message,
    }
    if errors:
        body["errors"] = errors
    body.update(extra)
    body["statusCode"] = status_code
    return JSONResponse(status_code=status_code, content=body, headers=headers)

