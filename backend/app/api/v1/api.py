"""
API v1 router combining all v1 endpoints.

The health router is mounted at the application root by ``app.main``.
"""
from fastapi import APIRouter
from app.api.v1 import auth, blogs, faqs, gallery, services, superadmin, test, user

api_router = APIRouter()

# Include all v1 routers
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(user.router, prefix="/user", tags=["user"])
api_router.include_router(test.router, prefix="/tests", tags=["tests"])
api_router.include_router(superadmin.router, prefix="/superadmin", tags=["superadmin"])
api_router.include_router(blogs.router, prefix="/blogs", tags=["blogs"])
api_router.include_router(faqs.router, prefix="/faqs", tags=["faqs"])
api_router.include_router(gallery.router, prefix="/gallery", tags=["gallery"])
api_router.include_router(services.router, prefix="/services", tags=["services"])
