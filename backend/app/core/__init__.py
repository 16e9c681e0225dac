"""
Core module for application configuration and utilities.

Note: the auth package is not imported at package level to avoid circular
imports with app.models. Import it directly: from app.core.auth import ...
"""
from .config import settings

__all__ = ["settings"]
