"""
Service catalogue endpoints.

Admins draft services; a superadmin approves them for the public catalogue.
"""
import logging

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session, joinedload

from app.core.auth.dependencies import get_current_user, require_staff, require_superadmin
from app.core.cache import cached_public, invalidate
from app.core.db_error_handling import handle_db_error
from app.core.error_responses import ErrorMessages, raise_forbidden, raise_not_found
from app.core.responses import success_response
from app.core.uploads import delete_image, save_image
from app.models import ApprovalStatus, Service, User, UserRole, get_db
from app.schemas.base import StatusUpdate, UploadResponse
from app.schemas.services import ServiceCreate, ServiceResponse, ServiceUpdate

logger = logging.getLogger(__name__)

router = APIRouter()

CACHE_PREFIX = "services:"
UPLOAD_CATEGORY = "services"


def _service_query(db: Session):
    return db.query(Service).options(joinedload(Service.author))


def _get_service_or_404(db: Session, service_id: int) -> Service:
    service = _service_query(db).filter(Service.id == service_id).first()
    if service is None:
        raise_not_found(ErrorMessages.SERVICE_NOT_FOUND)
    return service


def _ensure_admin_not_approved(user: User, service: Service) -> None:
    if user.role == UserRole.ADMIN and service.status == ApprovalStatus.APPROVED:
        raise_forbidden(ErrorMessages.CANNOT_EDIT_APPROVED_SERVICE)


def _list(db: Session, *statuses: ApprovalStatus):
    return (
        _service_query(db)
        .filter(Service.status.in_(statuses))
        .order_by(Service.created_at.desc(), Service.id.desc())
        .all()
    )


def _serialize(services):
    return [ServiceResponse.model_validate(s) for s in services]


@router.get("/public")
def list_public_services(db: Session = Depends(get_db)):
    def load():
        with handle_db_error(db, "list public services"):
            return jsonable_encoder(
                _serialize(_list(db, ApprovalStatus.APPROVED)), by_alias=True
            )

    data = cached_public(f"{CACHE_PREFIX}public", load)
    return success_response(data, "Public services retrieved successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
def create_service(
    service_data: ServiceCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "create service"):
        service = Service(
            **service_data.model_dump(),
            status=ApprovalStatus.PENDING,
            created_by=current_user.id,
        )
        db.add(service)
        db.commit()
        db.refresh(service)

    logger.info(f"Service {service.id} created by user {current_user.id}")
    return success_response(
        ServiceResponse.model_validate(service),
        "Service created successfully",
        status.HTTP_201_CREATED,
    )


@router.get("")
def list_approved_services(
    current_user: User = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    """Approved services with their authors. Drafts are under /pending-rejected."""
    with handle_db_error(db, "list services"):
        services = _list(db, ApprovalStatus.APPROVED)
    return success_response(_serialize(services), "Services retrieved successfully")


@router.get("/pending-rejected")
def list_pending_rejected_services(
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "list pending services"):
        services = _list(db, ApprovalStatus.PENDING, ApprovalStatus.REJECTED)
    return success_response(
        _serialize(services), "Pending and rejected services retrieved successfully"
    )


@router.post("/upload-image")
def upload_service_image(
    image: UploadFile = File(None),
    current_user: User = Depends(require_staff),
):
    stored = UploadResponse(**save_image(image, UPLOAD_CATEGORY))
    return success_response(stored, "Image uploaded successfully")


@router.get("/{service_id}")
def get_service(
    service_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Regular users only see approved services. ADMINs work on drafts and are
    refused approved ones.
    """
    with handle_db_error(db, "get service"):
        service = _get_service_or_404(db, service_id)

    if current_user.role in (UserRole.USER_SELF, UserRole.USER_PARENT):
        if service.status != ApprovalStatus.APPROVED:
            raise_forbidden(ErrorMessages.SERVICE_ACCESS_DENIED)
    elif current_user.role == UserRole.ADMIN and service.status == ApprovalStatus.APPROVED:
        raise_forbidden(ErrorMessages.SERVICE_ACCESS_DENIED)

    return success_response(
        ServiceResponse.model_validate(service), "Service retrieved successfully"
    )


@router.put("/{service_id}")
def update_service(
    service_id: int,
    update: ServiceUpdate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Partially update a service. Editing a REJECTED service resubmits it as
    PENDING; a replaced image is removed from storage.
    """
    changes = update.model_dump(exclude_none=True)

    with handle_db_error(db, "update service"):
        service = _get_service_or_404(db, service_id)
        _ensure_admin_not_approved(current_user, service)

        old_image = service.image_url
        status_changed = service.status == ApprovalStatus.REJECTED
        for field, value in changes.items():
            setattr(service, field, value)
        if status_changed:
            service.status = ApprovalStatus.PENDING
        db.commit()
        db.refresh(service)

    if old_image and service.image_url != old_image:
        delete_image(old_image)
    invalidate(CACHE_PREFIX)

    message = "Service updated successfully"
    if status_changed:
        message += " and status changed to PENDING"
    return success_response(ServiceResponse.model_validate(service), message)


@router.delete("/{service_id}")
def delete_service(
    service_id: int,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "delete service"):
        service = _get_service_or_404(db, service_id)
        _ensure_admin_not_approved(current_user, service)
        image_url = service.image_url
        db.delete(service)
        db.commit()

    delete_image(image_url)
    invalidate(CACHE_PREFIX)
    logger.info(f"Service {service_id} deleted by user {current_user.id}")
    return success_response(message="Service and associated image deleted successfully")


@router.put("/{service_id}/status")
def update_service_status(
    service_id: int,
    body: StatusUpdate,
    current_user: User = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "update service status"):
        service = _get_service_or_404(db, service_id)
        service.status = body.status
        db.commit()
        db.refresh(service)

    invalidate(CACHE_PREFIX)
    return success_response(
        ServiceResponse.model_validate(service),
        f"Service status changed to {body.status.value} successfully",
    )
