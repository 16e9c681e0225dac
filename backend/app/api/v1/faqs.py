"""
FAQ endpoints.

Admins write questions and candidate answers; a superadmin publishes
questions, orders them and picks which answer is shown publicly.
"""
import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from app.core.auth.dependencies import get_current_user, require_staff, require_superadmin
from app.core.cache import cached_public, invalidate
from app.core.db_error_handling import handle_db_error
from app.core.error_responses import ErrorMessages, raise_forbidden, raise_not_found
from app.core.responses import success_response
from app.models import Faq, FaqAnswer, User, UserRole, get_db
from app.schemas.faqs import (
    AnswerOrderUpdate,
    FaqAnswerCreate,
    FaqAnswerResponse,
    FaqAnswerUpdate,
    FaqCreate,
    FaqOrderUpdate,
    FaqResponse,
    FaqStatusUpdate,
    FaqUpdate,
    OrderItem,
    PublicFaq,
)

logger = logging.getLogger(__name__)

router = APIRouter()

CACHE_PREFIX = "faqs:"


def _faq_query(db: Session):
    return db.query(Faq).options(joinedload(Faq.author), selectinload(Faq.answers))


def _get_faq_or_404(db: Session, faq_id: int) -> Faq:
    faq = _faq_query(db).filter(Faq.id == faq_id).first()
    if faq is None:
        raise_not_found(ErrorMessages.faq_not_found(faq_id))
    return faq


def _get_answer_or_404(db: Session, answer_id: int) -> FaqAnswer:
    answer = db.query(FaqAnswer).filter(FaqAnswer.id == answer_id).first()
    if answer is None:
        raise_not_found(ErrorMessages.FAQ_ANSWER_NOT_FOUND)
    return answer


def _ensure_owner(user: User, created_by: int, detail: str) -> None:
    if user.role == UserRole.ADMIN and created_by != user.id:
        raise_forbidden(detail)


def _apply_order(items: List[OrderItem], records: Dict[int, object], missing) -> None:
    for item in items:
        record = records.get(item.id)
        if record is None:
            raise_not_found(missing(item.id))
        record.order = item.order


@router.get("/public")
def list_public_faqs(db: Session = Depends(get_db)):
    """Published FAQs in display order, each with its selected answer."""

    def load():
        with handle_db_error(db, "list public FAQs"):
            faqs = (
                db.query(Faq)
                .options(selectinload(Faq.answers))
                .filter(Faq.is_published.is_(True))
                .order_by(Faq.order.asc(), Faq.id.asc())
                .all()
            )
            return jsonable_encoder(
                [PublicFaq.from_faq(f) for f in faqs], by_alias=True
            )

    data = cached_public(f"{CACHE_PREFIX}public", load)
    return success_response(data, "Public FAQs retrieved successfully")


@router.post("", status_code=status.HTTP_201_CREATED)
def create_faq(
    faq_data: FaqCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "create FAQ"):
        faq = Faq(
            question=faq_data.question,
            is_published=faq_data.is_published,
            created_by=current_user.id,
        )
        db.add(faq)
        db.commit()
        db.refresh(faq)

    invalidate(CACHE_PREFIX)
    return success_response(
        FaqResponse.model_validate(faq), "FAQ created successfully", status.HTTP_201_CREATED
    )


@router.get("")
def list_faqs(
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """ADMINs see their own FAQs; SUPERADMINs see all. Newest first."""
    with handle_db_error(db, "list FAQs"):
        query = _faq_query(db)
        if current_user.role == UserRole.ADMIN:
            query = query.filter(Faq.created_by == current_user.id)
        faqs = query.order_by(Faq.created_at.desc(), Faq.id.desc()).all()

    return success_response(
        [FaqResponse.model_validate(f) for f in faqs], "FAQs retrieved successfully"
    )


@router.get("/pending")
def list_pending_faqs(
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "list pending FAQs"):
        query = _faq_query(db).filter(Faq.is_published.is_(False))
        if current_user.role == UserRole.ADMIN:
            query = query.filter(Faq.created_by == current_user.id)
        faqs = query.order_by(Faq.created_at.desc(), Faq.id.desc()).all()

    return success_response(
        [FaqResponse.model_validate(f) for f in faqs],
        "Pending FAQs retrieved successfully",
    )


@router.put("/order")
def update_faq_order(
    body: FaqOrderUpdate,
    current_user: User = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    """Set the display order of several FAQs at once."""
    with handle_db_error(db, "update FAQ order"):
        ids = [item.id for item in body.ordered_faqs]
        faqs = {f.id: f for f in db.query(Faq).filter(Faq.id.in_(ids)).all()}
        _apply_order(body.ordered_faqs, faqs, ErrorMessages.faq_not_found)
        db.commit()

    invalidate(CACHE_PREFIX)
    return success_response(message="FAQ order updated successfully")


# ============================================================================
# Answers
# ============================================================================


@router.post("/answer", status_code=status.HTTP_201_CREATED)
def create_answer(
    answer_data: FaqAnswerCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Add a candidate answer. New answers are not selected."""
    with handle_db_error(db, "create FAQ answer"):
        _get_faq_or_404(db, answer_data.faq_id)
        count = (
            db.query(func.count(FaqAnswer.id))
            .filter(FaqAnswer.faq_id == answer_data.faq_id)
            .scalar()
        )
        answer = FaqAnswer(
            faq_id=answer_data.faq_id,
            answer=answer_data.answer,
            is_selected=False,
            order=count,
            created_by=current_user.id,
        )
        db.add(answer)
        db.commit()
        db.refresh(answer)

    return success_response(
        FaqAnswerResponse.model_validate(answer),
        "FAQ answer created successfully",
        status.HTTP_201_CREATED,
    )


@router.put("/answer/{answer_id}")
def update_answer(
    answer_id: int,
    update: FaqAnswerUpdate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """
    Edit an answer. Selecting it clears the selection on the FAQ's other
    answers so at most one answer is shown publicly.
    """
    with handle_db_error(db, "update FAQ answer"):
        answer = _get_answer_or_404(db, answer_id)
        _ensure_owner(current_user, answer.created_by, ErrorMessages.FAQ_ANSWER_MODIFY_DENIED)

        if update.is_selected:
            db.query(FaqAnswer).filter(
                FaqAnswer.faq_id == answer.faq_id, FaqAnswer.id != answer.id
            ).update({FaqAnswer.is_selected: False}, synchronize_session=False)

        for field, value in update.model_dump(exclude_none=True).items():
            setattr(answer, field, value)
        db.commit()
        db.refresh(answer)

    invalidate(CACHE_PREFIX)
    return success_response(
        FaqAnswerResponse.model_validate(answer), "FAQ answer updated successfully"
    )


@router.delete("/answer/{answer_id}")
def delete_answer(
    answer_id: int,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "delete FAQ answer"):
        answer = _get_answer_or_404(db, answer_id)
        _ensure_owner(current_user, answer.created_by, ErrorMessages.FAQ_ANSWER_MODIFY_DENIED)
        db.delete(answer)
        db.commit()

    invalidate(CACHE_PREFIX)
    return success_response(message="FAQ answer deleted successfully")


@router.get("/{faq_id}/answers")
def list_answers(
    faq_id: int,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "list FAQ answers"):
        _get_faq_or_404(db, faq_id)
        answers = (
            db.query(FaqAnswer)
            .filter(FaqAnswer.faq_id == faq_id)
            .order_by(FaqAnswer.order.asc(), FaqAnswer.id.asc())
            .all()
        )

    return success_response(
        [FaqAnswerResponse.model_validate(a) for a in answers],
        f"Answers for FAQ ID {faq_id} retrieved successfully",
    )


@router.put("/{faq_id}/answer-order")
def update_answer_order(
    faq_id: int,
    body: AnswerOrderUpdate,
    current_user: User = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    """Reorder a FAQ's answers. Every id must belong to this FAQ."""
    with handle_db_error(db, "update FAQ answer order"):
        faq = _get_faq_or_404(db, faq_id)
        answers = {a.id: a for a in faq.answers}
        _apply_order(
            body.ordered_answers, answers, lambda _: ErrorMessages.FAQ_ANSWER_NOT_FOUND
        )
        db.commit()

    invalidate(CACHE_PREFIX)
    return success_response(message="FAQ answer order updated successfully")


# ============================================================================
# Single FAQ
# ============================================================================


@router.get("/{faq_id}")
def get_faq(
    faq_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Regular users only see published FAQs; ADMINs only their own.
    """
    with handle_db_error(db, "get FAQ"):
        faq = _get_faq_or_404(db, faq_id)

    if current_user.role in (UserRole.USER_SELF, UserRole.USER_PARENT):
        if not faq.is_published:
            raise_forbidden(ErrorMessages.ACCESS_DENIED)
    else:
        _ensure_owner(current_user, faq.created_by, ErrorMessages.FAQ_ACCESS_DENIED)

    return success_response(FaqResponse.model_validate(faq), "FAQ retrieved successfully")


@router.put("/{faq_id}")
def update_faq(
    faq_id: int,
    update: FaqUpdate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "update FAQ"):
        faq = _get_faq_or_404(db, faq_id)
        _ensure_owner(current_user, faq.created_by, ErrorMessages.FAQ_ACCESS_DENIED)
        for field, value in update.model_dump(exclude_none=True).items():
            setattr(faq, field, value)
        db.commit()
        db.refresh(faq)

    invalidate(CACHE_PREFIX)
    return success_response(FaqResponse.model_validate(faq), "FAQ updated successfully")


@router.delete("/{faq_id}")
def delete_faq(
    faq_id: int,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Delete a FAQ and all of its answers."""
    with handle_db_error(db, "delete FAQ"):
        faq = _get_faq_or_404(db, faq_id)
        _ensure_owner(current_user, faq.created_by, ErrorMessages.FAQ_ACCESS_DENIED)
        db.delete(faq)
        db.commit()

    invalidate(CACHE_PREFIX)
    logger.info(f"FAQ {faq_id} deleted by user {current_user.id}")
    return success_response(message="FAQ deleted successfully")


@router.put("/{faq_id}/status")
def update_faq_status(
    faq_id: int,
    body: FaqStatusUpdate,
    current_user: User = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    """Publish or unpublish a FAQ."""
    with handle_db_error(db, "update FAQ status"):
        faq = _get_faq_or_404(db, faq_id)
        faq.is_published = body.is_published
        db.commit()
        db.refresh(faq)

    invalidate(CACHE_PREFIX)
    label = "PUBLISHED" if body.is_published else "UNPUBLISHED"
    return success_response(
        FaqResponse.model_validate(faq), f"FAQ status changed to {label} successfully"
    )
