"""
Authentication package: password hashing, JWT handling and FastAPI dependencies.
"""
from .dependencies import (
    get_current_user,
    require_roles,
    require_staff,
    require_superadmin,
)
from .security import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token,
    token_claims,
)

__all__ = [
    "get_current_user",
    "require_roles",
    "require_staff",
    "require_superadmin",
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    "token_claims",
]
