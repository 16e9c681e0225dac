"""
Gallery endpoints.

Each gallery keeps its images under ``galleries/gallery-<id>/``. The first
uploaded image becomes the thumbnail; exactly one image is the thumbnail
while the gallery has images.
"""
import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session, joinedload, selectinload

from app.core.auth.dependencies import get_current_user, require_staff, require_superadmin
from app.core.cache import cached_public, invalidate
from app.core.db_error_handling import handle_db_error
from app.core.error_responses import ErrorMessages, raise_forbidden, raise_not_found
from app.core.responses import success_response
from app.core.uploads import delete_directory, delete_image, save_image
from app.models import ApprovalStatus, Gallery, GalleryImage, User, UserRole, get_db
from app.schemas.base import StatusUpdate
from app.schemas.galleries import (
    GalleryCreate,
    GalleryImageResponse,
    GalleryResponse,
    GalleryUpdate,
    GalleryUpdateResponse,
    GalleryUploadResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

CACHE_PREFIX = "gallery:"
UPLOAD_CATEGORY = "galleries"


def gallery_dir_name(gallery_id: int) -> str:
    return f"gallery-{gallery_id}"


def _gallery_query(db: Session):
    return db.query(Gallery).options(
        joinedload(Gallery.author), selectinload(Gallery.images)
    )


def _get_gallery_or_404(db: Session, gallery_id: int) -> Gallery:
    gallery = _gallery_query(db).filter(Gallery.id == gallery_id).first()
    if gallery is None:
        raise_not_found(ErrorMessages.GALLERY_NOT_FOUND)
    return gallery


def _ensure_can_modify(user: User, gallery: Gallery) -> None:
    """ADMINs may only change their own galleries that are not yet approved."""
    if user.role == UserRole.SUPERADMIN:
        return
    if (
        user.role != UserRole.ADMIN
        or gallery.created_by != user.id
        or gallery.status == ApprovalStatus.APPROVED
    ):
        raise_forbidden(ErrorMessages.GALLERY_MODIFY_DENIED)


def _get_image_or_404(gallery: Gallery, image_id: int) -> GalleryImage:
    image = next((i for i in gallery.images if i.id == image_id), None)
    if image is None:
        raise_not_found(ErrorMessages.GALLERY_IMAGE_NOT_FOUND)
    return image


def _serialize(galleries, include_images: bool = False):
    return [GalleryResponse.from_gallery(g, include_images=include_images) for g in galleries]


@router.get("/public")
def list_public_galleries(db: Session = Depends(get_db)):
    """Approved galleries with their thumbnail URL."""

    def load():
        with handle_db_error(db, "list public galleries"):
            galleries = (
                _gallery_query(db)
                .filter(Gallery.status == ApprovalStatus.APPROVED)
                .order_by(Gallery.created_at.desc(), Gallery.id.desc())
                .all()
            )
            return jsonable_encoder(_serialize(galleries), by_alias=True)

    data = cached_public(f"{CACHE_PREFIX}public", load)
    return success_response(data, "Public galleries retrieved successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
def create_gallery(
    gallery_data: GalleryCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "create gallery"):
        gallery = Gallery(
            title=gallery_data.title,
            status=ApprovalStatus.PENDING,
            created_by=current_user.id,
        )
        db.add(gallery)
        db.commit()
        db.refresh(gallery)

    logger.info(f"Gallery {gallery.id} created by user {current_user.id}")
    return success_response(
        GalleryResponse.from_gallery(gallery),
        "Gallery created successfully",
        status.HTTP_201_CREATED,
    )


@router.get("")
def list_all_galleries(
    current_user: User = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "list galleries"):
        galleries = (
            _gallery_query(db).order_by(Gallery.created_at.desc(), Gallery.id.desc()).all()
        )
    return success_response(_serialize(galleries), "Galleries retrieved successfully")


@router.get("/pending")
def list_pending_galleries(
    current_user: User = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "list pending galleries"):
        galleries = (
            _gallery_query(db)
            .filter(Gallery.status == ApprovalStatus.PENDING)
            .order_by(Gallery.created_at.desc(), Gallery.id.desc())
            .all()
        )
    return success_response(
        _serialize(galleries), "Pending galleries retrieved successfully"
    )


@router.get("/my-galleries")
def list_my_galleries(
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "list own galleries"):
        galleries = (
            _gallery_query(db)
            .filter(Gallery.created_by == current_user.id)
            .order_by(Gallery.created_at.desc(), Gallery.id.desc())
            .all()
        )
    return success_response(_serialize(galleries), "Your galleries retrieved successfully")


@router.post("/upload-image")
def upload_gallery_image(
    gallery_id: int = Form(..., alias="galleryId"),
    image: UploadFile = File(None),
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Add an image to a gallery. The gallery's first image becomes its
    thumbnail.
    """
    with handle_db_error(db, "upload gallery image"):
        gallery = _get_gallery_or_404(db, gallery_id)
        _ensure_can_modify(current_user, gallery)

        stored = save_image(image, UPLOAD_CATEGORY, gallery_dir_name(gallery.id))
        try:
            gallery_image = GalleryImage(
                gallery_id=gallery.id,
                image_url=stored["imageUrl"],
                is_thumbnail=len(gallery.images) == 0,
            )
            db.add(gallery_image)
            db.commit()
            db.refresh(gallery_image)
        except Exception:
            # No row references the file
            delete_image(stored["imageUrl"])
            raise

    invalidate(CACHE_PREFIX)
    data = GalleryUploadResponse(
        image_id=gallery_image.id,
        image_url=gallery_image.image_url,
        is_thumbnail=gallery_image.is_thumbnail,
        format=stored["format"],
        size=stored["size"],
    )
    return success_response(data, "Image uploaded and added to gallery successfully")


@router.get("/{gallery_id}")
def get_gallery(
    gallery_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Return a gallery with its images.

    Regular users only see approved galleries. ADMINs see their own
    galleries and any that are still pending or rejected.
    """
    with handle_db_error(db, "get gallery"):
        gallery = _get_gallery_or_404(db, gallery_id)

    if current_user.role in (UserRole.USER_SELF, UserRole.USER_PARENT):
        if gallery.status != ApprovalStatus.APPROVED:
            raise_forbidden(ErrorMessages.GALLERY_ACCESS_DENIED)
    elif current_user.role == UserRole.ADMIN:
        if gallery.created_by != current_user.id and gallery.status == ApprovalStatus.APPROVED:
            raise_forbidden(ErrorMessages.GALLERY_ACCESS_DENIED)

    return success_response(
        GalleryResponse.from_gallery(gallery), "Gallery retrieved successfully"
    )


@router.put("/{gallery_id}")
def update_gallery(
    gallery_id: int,
    update: GalleryUpdate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Rename a gallery. Editing a REJECTED gallery resubmits it as PENDING."""
    with handle_db_error(db, "update gallery"):
        gallery = _get_gallery_or_404(db, gallery_id)
        _ensure_can_modify(current_user, gallery)

        status_changed = gallery.status == ApprovalStatus.REJECTED
        gallery.title = update.title
        if status_changed:
            gallery.status = ApprovalStatus.PENDING
        db.commit()
        db.refresh(gallery)

    invalidate(CACHE_PREFIX)
    message = "Gallery updated successfully"
    if status_changed:
        message += " and status changed to PENDING"
    data = GalleryUpdateResponse(
        gallery=GalleryResponse.from_gallery(gallery), status_changed=status_changed
    )
    return success_response(data, message)


@router.delete("/{gallery_id}")
def delete_gallery(
    gallery_id: int,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Delete a gallery, its image rows and its upload directory."""
    with handle_db_error(db, "delete gallery"):
        gallery = _get_gallery_or_404(db, gallery_id)
        _ensure_can_modify(current_user, gallery)
        db.delete(gallery)
        db.commit()

    delete_directory(UPLOAD_CATEGORY, gallery_dir_name(gallery_id))
    invalidate(CACHE_PREFIX)
    logger.info(f"Gallery {gallery_id} deleted by user {current_user.id}")
    return success_response(message="Gallery and all associated images deleted successfully")


@router.patch("/{gallery_id}/status")
def update_gallery_status(
    gallery_id: int,
    body: StatusUpdate,
    current_user: User = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "update gallery status"):
        gallery = _get_gallery_or_404(db, gallery_id)
        gallery.status = body.status
        db.commit()
        db.refresh(gallery)

    invalidate(CACHE_PREFIX)
    return success_response(
        GalleryResponse.from_gallery(gallery),
        f"Gallery status changed to {body.status.value} successfully",
    )


@router.patch("/{gallery_id}/images/{image_id}/set-thumbnail")
def set_thumbnail(
    gallery_id: int,
    image_id: int,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "set gallery thumbnail"):
        gallery = _get_gallery_or_404(db, gallery_id)
        _ensure_can_modify(current_user, gallery)
        image = _get_image_or_404(gallery, image_id)

        for other in gallery.images:
            other.is_thumbnail = other.id == image.id
        db.commit()
        db.refresh(image)

    invalidate(CACHE_PREFIX)
    return success_response(
        GalleryImageResponse.model_validate(image), "Thumbnail set successfully"
    )


@router.delete("/{gallery_id}/images/{image_id}")
def delete_gallery_image(
    gallery_id: int,
    image_id: int,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Remove an image. If it was the thumbnail, the oldest remaining image
    takes over.
    """
    with handle_db_error(db, "delete gallery image"):
        gallery = _get_gallery_or_404(db, gallery_id)
        _ensure_can_modify(current_user, gallery)
        image = _get_image_or_404(gallery, image_id)

        image_url = image.image_url
        was_thumbnail = image.is_thumbnail
        gallery.images.remove(image)
        if was_thumbnail and gallery.images:
            gallery.images[0].is_thumbnail = True
        db.commit()

    delete_image(image_url)
    invalidate(CACHE_PREFIX)
    return success_response(message="Image deleted successfully")
