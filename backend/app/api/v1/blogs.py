"""
Blog endpoints.

Admins write posts that stay PENDING until a superadmin approves them.
Approved posts are listed publicly through the response cache.
"""
import logging

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session, joinedload

from app.core.auth.dependencies import get_current_user, require_staff, require_superadmin
from app.core.cache import cached_public, invalidate
from app.core.db_error_handling import handle_db_error
from app.core.error_responses import (
    ErrorMessages,
    raise_bad_request,
    raise_forbidden,
    raise_not_found,
)
from app.core.responses import success_response
from app.core.uploads import delete_image, save_image
from app.models import ApprovalStatus, Blog, User, UserRole, get_db
from app.schemas.base import StatusUpdate, UploadResponse
from app.schemas.blogs import BlogCreate, BlogResponse, BlogUpdate, BlogUpdateResponse

logger = logging.getLogger(__name__)

router = APIRouter()

CACHE_PREFIX = "blogs:"


def _blog_query(db: Session):
    return db.query(Blog).options(joinedload(Blog.author))


def _find_blog(db: Session, identifier: str) -> Blog:
    """Look a blog up by UUID, or by numeric id for older links."""
    query = _blog_query(db)
    if identifier.isdigit():
        blog = query.filter(Blog.id == int(identifier)).first()
    else:
        blog = query.filter(Blog.uuid == identifier).first()
    if blog is None:
        raise_not_found(ErrorMessages.BLOG_NOT_FOUND)
    return blog


def _ensure_can_modify(user: User, blog: Blog) -> None:
    if user.role == UserRole.SUPERADMIN:
        return
    if user.role != UserRole.ADMIN or blog.created_by != user.id:
        raise_forbidden(ErrorMessages.BLOG_MODIFY_DENIED)


def _serialize(blogs):
    return [BlogResponse.from_blog(b) for b in blogs]


@router.get("/public")
def list_public_blogs(db: Session = Depends(get_db)):
    """Approved blogs, newest first. No authentication required."""

    def load():
        with handle_db_error(db, "list public blogs"):
            blogs = (
                _blog_query(db)
                .filter(Blog.status == ApprovalStatus.APPROVED)
                .order_by(Blog.created_at.desc(), Blog.id.desc())
                .all()
            )
            return jsonable_encoder(_serialize(blogs), by_alias=True)

    data = cached_public(f"{CACHE_PREFIX}public", load)
    return success_response(data, "Public blogs retrieved successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
def create_blog(
    blog_data: BlogCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Create a blog post in PENDING status.

    Raises:
        HTTPException: 400 if no uploaded image URL is given
    """
    if not blog_data.image_url:
        raise_bad_request(ErrorMessages.IMAGE_URL_REQUIRED)

    with handle_db_error(db, "create blog"):
        blog = Blog(
            title=blog_data.title,
            content=blog_data.content,
            image_url=blog_data.image_url,
            status=ApprovalStatus.PENDING,
            created_by=current_user.id,
        )
        db.add(blog)
        db.commit()
        db.refresh(blog)

    invalidate(CACHE_PREFIX)
    logger.info(f"Blog {blog.uuid} created by user {current_user.id}")
    return success_response(
        BlogResponse.from_blog(blog), "Blog created successfully", status.HTTP_201_CREATED
    )


@router.get("")
def list_all_blogs(
    current_user: User = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "list blogs"):
        blogs = _blog_query(db).order_by(Blog.created_at.desc(), Blog.id.desc()).all()
    return success_response(_serialize(blogs), "Blogs retrieved successfully")


@router.get("/pending")
def list_pending_blogs(
    current_user: User = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "list pending blogs"):
        blogs = (
            _blog_query(db)
            .filter(Blog.status == ApprovalStatus.PENDING)
            .order_by(Blog.created_at.desc(), Blog.id.desc())
            .all()
        )
    return success_response(_serialize(blogs), "Pending blogs retrieved successfully")


@router.get("/my-blogs")
def list_my_blogs(
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "list own blogs"):
        blogs = (
            _blog_query(db)
            .filter(Blog.created_by == current_user.id)
            .order_by(Blog.created_at.desc(), Blog.id.desc())
            .all()
        )
    return success_response(_serialize(blogs), "Your blogs retrieved successfully")


@router.post("/upload-image")
def upload_blog_image(
    image: UploadFile = File(None),
    current_user: User = Depends(require_staff),
):
    """Store a blog image and return its URL for a later create or update."""
    stored = UploadResponse(**save_image(image, "blog"))
    return success_response(stored, "Image uploaded successfully")


@router.get("/{identifier}")
def get_blog(
    identifier: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Return one blog.

    Regular users only see approved posts; admins see their own or approved
    posts; superadmins see everything.
    """
    with handle_db_error(db, "get blog"):
        blog = _find_blog(db, identifier)

    if blog.status != ApprovalStatus.APPROVED:
        if current_user.role == UserRole.ADMIN and blog.created_by != current_user.id:
            raise_forbidden(ErrorMessages.BLOG_ACCESS_DENIED)
        if current_user.role not in (UserRole.ADMIN, UserRole.SUPERADMIN):
            raise_not_found(ErrorMessages.BLOG_NOT_FOUND)

    return success_response(BlogResponse.from_blog(blog), "Blog retrieved successfully")


@router.put("/{identifier}")
def update_blog(
    identifier: str,
    update: BlogUpdate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Partially update a blog. Editing a REJECTED blog resubmits it as PENDING.

    A replaced image is removed from storage.
    """
    changes = update.model_dump(exclude_none=True)

    with handle_db_error(db, "update blog"):
        blog = _find_blog(db, identifier)
        _ensure_can_modify(current_user, blog)

        old_image = blog.image_url
        status_changed = blog.status == ApprovalStatus.REJECTED
        for field, value in changes.items():
            setattr(blog, field, value)
        if status_changed:
            blog.status = ApprovalStatus.PENDING
        db.commit()
        db.refresh(blog)

    if blog.image_url != old_image:
        delete_image(old_image)
    invalidate(CACHE_PREFIX)

    message = "Blog updated successfully"
    if status_changed:
        message += " and status changed to PENDING"
    data = BlogUpdateResponse(
        blog=BlogResponse.from_blog(blog), status_changed=status_changed
    )
    return success_response(data, message)


@router.delete("/{identifier}")
def delete_blog(
    identifier: str,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Delete a blog together with its stored image."""
    with handle_db_error(db, "delete blog"):
        blog = _find_blog(db, identifier)
        _ensure_can_modify(current_user, blog)
        image_url = blog.image_url
        db.delete(blog)
        db.commit()

    delete_image(image_url)
    invalidate(CACHE_PREFIX)
    logger.info(f"Blog {identifier} deleted by user {current_user.id}")
    return success_response(message="Blog deleted successfully")


@router.put("/{identifier}/status")
def update_blog_status(
    identifier: str,
    body: StatusUpdate,
    current_user: User = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "update blog status"):
        blog = _find_blog(db, identifier)
        blog.status = body.status
        db.commit()
        db.refresh(blog)

    invalidate(CACHE_PREFIX)
    return success_response(
        BlogResponse.from_blog(blog),
        f"Blog status changed to {body.status.value} successfully",
    )
