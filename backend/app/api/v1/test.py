"""
Psychological test endpoints.

Staff (ADMIN/SUPERADMIN) author tests, subskala and questions; end users
take approved tests that match their role and age and read their results.
"""
import logging
import random
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, joinedload

from app.core.auth.dependencies import get_current_user, require_roles
from app.core.db_error_handling import handle_db_error
from app.core.error_responses import (
    ErrorMessages,
    raise_bad_request,
    raise_forbidden,
    raise_not_found,
)
from app.core.responses import success_response
from app.core.scoring import (
    BAND_LABELS,
    aggregate_scores,
    age_in_range,
    score_subskala,
    validate_bands,
)
from app.core.validators import calculate_age
from app.models import (
    ApprovalStatus,
    Question,
    QuestionOrder,
    Subskala,
    Test,
    TestResult,
    TestResultSubskala,
    TestTarget,
    User,
    UserRole,
    get_db,
)
from app.schemas.tests import (
    AdminSubskalaResult,
    AdminTestResultDetail,
    QuestionCreate,
    QuestionOrderCreate,
    QuestionResponse,
    QuestionUpdate,
    ResultUser,
    StartTestResponse,
    SubmitAnswers,
    SubmitResultResponse,
    SubskalaCreate,
    SubskalaResponse,
    SubskalaResultItem,
    SubskalaUpdate,
    TestCreate,
    TestQuestion,
    TestResponse,
    TestResultByTest,
    TestResultDetail,
    TestResultListItem,
    TestSummary,
    TestUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()

OPTION_LABELS = ("Tidak Benar", "Agak Benar", "Benar")

require_test_staff = require_roles(
    UserRole.ADMIN, UserRole.SUPERADMIN, detail=ErrorMessages.ROLE_CANNOT_ACCESS
)


def target_for_role(role: UserRole) -> TestTarget:
    """Tests for USER_SELF target SELF; everyone else takes PARENT tests."""
    return TestTarget.SELF if role == UserRole.USER_SELF else TestTarget.PARENT


def _get_test_or_404(db: Session, test_id: int, detail: str = ErrorMessages.TEST_ID_NOT_FOUND) -> Test:
    test = db.query(Test).filter(Test.id == test_id).first()
    if test is None:
        raise_not_found(detail)
    return test


def _deny_admin_on_approved(user: User, test: Test, detail: str) -> None:
    if user.role == UserRole.ADMIN and test.status == ApprovalStatus.APPROVED:
        raise_forbidden(detail)


def _result_items(result: TestResult) -> List[SubskalaResultItem]:
    return [
        SubskalaResultItem(
            subskala=row.subskala.name,
            score=row.score,
            category=row.category,
            description=row.description,
        )
        for row in result.subskala_results
    ]


# ============================================================================
# Authoring (ADMIN / SUPERADMIN)
# ============================================================================


@router.post("", status_code=status.HTTP_201_CREATED)
def create_test(
    test_data: TestCreate,
    current_user: User = Depends(require_test_staff),
    db: Session = Depends(get_db),
):
    """Create a test. New tests start PENDING until a superadmin approves them."""
    with handle_db_error(db, "create test"):
        test = Test(**test_data.model_dump(), status=ApprovalStatus.PENDING)
        db.add(test)
        db.commit()
        db.refresh(test)

    logger.info(f"Test {test.id} created by user {current_user.id}")
    return success_response(
        TestResponse.model_validate(test),
        "Test created successfully",
        status.HTTP_201_CREATED,
    )


@router.post("/subskala", status_code=status.HTTP_201_CREATED)
def create_subskala(
    subskala_data: SubskalaCreate,
    current_user: User = Depends(require_test_staff),
    db: Session = Depends(get_db),
):
    """
    Add a subskala with its three score bands to a test.

    Band labels are always Normal, Borderline and Abnormal.
    """
    with handle_db_error(db, "create subskala"):
        _get_test_or_404(db, subskala_data.test_id)
        labels = dict(zip(("label1", "label2", "label3"), BAND_LABELS))
        subskala = Subskala(**subskala_data.model_dump(), **labels)
        db.add(subskala)
        db.commit()
        db.refresh(subskala)

    return success_response(
        SubskalaResponse.model_validate(subskala),
        "Subskala created successfully",
        status.HTTP_201_CREATED,
    )


@router.post("/question", status_code=status.HTTP_201_CREATED)
def create_question(
    question_data: QuestionCreate,
    current_user: User = Depends(require_test_staff),
    db: Session = Depends(get_db),
):
    """Add a three-option question to a subskala."""
    with handle_db_error(db, "create question"):
        subskala = (
            db.query(Subskala).filter(Subskala.id == question_data.subskala_id).first()
        )
        if subskala is None:
            raise_not_found(ErrorMessages.SUBSKALA_NOT_FOUND)

        labels = dict(
            zip(("option1_label", "option2_label", "option3_label"), OPTION_LABELS)
        )
        question = Question(**question_data.model_dump(), **labels)
        db.add(question)
        db.commit()
        db.refresh(question)

    return success_response(
        QuestionResponse.model_validate(question),
        "Question created successfully",
        status.HTTP_201_CREATED,
    )


@router.post("/question-order")
def save_question_order(
    body: QuestionOrderCreate,
    current_user: User = Depends(require_test_staff),
    db: Session = Depends(get_db),
):
    """
    Shuffle a test's questions once and store the order permanently.

    Raises:
        HTTPException: 400 if an order already exists or the test has no
            questions
    """
    with handle_db_error(db, "save question order"):
        existing = (
            db.query(QuestionOrder.id).filter(QuestionOrder.test_id == body.test_id).first()
        )
        if existing is not None:
            raise_bad_request(ErrorMessages.QUESTION_ORDER_EXISTS)

        question_ids = [
            question_id
            for (question_id,) in db.query(Question.id)
            .join(Subskala, Question.subskala_id == Subskala.id)
            .filter(Subskala.test_id == body.test_id)
            .all()
        ]
        if not question_ids:
            raise_bad_request(ErrorMessages.NO_QUESTIONS_TO_ORDER)

        random.shuffle(question_ids)
        db.add_all(
            QuestionOrder(test_id=body.test_id, question_id=question_id, order=position)
            for position, question_id in enumerate(question_ids, start=1)
        )
        db.commit()

    logger.info(f"Saved order of {len(question_ids)} questions for test {body.test_id}")
    return success_response(
        {"testId": body.test_id, "totalQuestions": len(question_ids)},
        "Question order saved successfully",
    )


@router.get("")
def list_tests(
    current_user: User = Depends(require_test_staff),
    db: Session = Depends(get_db),
):
    """ADMIN sees PENDING and REJECTED tests; SUPERADMIN sees every test."""
    with handle_db_error(db, "list tests"):
        query = db.query(Test)
        if current_user.role == UserRole.ADMIN:
            query = query.filter(
                Test.status.in_([ApprovalStatus.PENDING, ApprovalStatus.REJECTED])
            )
        tests = query.order_by(Test.created_at.desc(), Test.id.desc()).all()

    return success_response(
        [TestResponse.model_validate(t) for t in tests], "Tests retrieved successfully"
    )


# ============================================================================
# Taking tests (end users)
# ============================================================================


@router.get("/available")
def list_available_tests(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    List approved tests matching the caller's role and age.

    Raises:
        HTTPException: 400 without a date of birth, 404 when nothing matches
    """
    if current_user.date_of_birth is None:
        raise_bad_request(ErrorMessages.DATE_OF_BIRTH_REQUIRED)
    age = calculate_age(current_user.date_of_birth)

    with handle_db_error(db, "list available tests"):
        tests = (
            db.query(Test)
            .filter(
                Test.status == ApprovalStatus.APPROVED,
                Test.target == target_for_role(current_user.role),
                Test.min_age <= age,
                Test.max_age >= age,
            )
            .order_by(Test.id)
            .all()
        )

    if not tests:
        raise_not_found(ErrorMessages.NO_AVAILABLE_TESTS)

    return success_response(
        [TestResponse.model_validate(t) for t in tests],
        "Available tests retrieved successfully",
    )


@router.get("/results")
def list_my_results(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The caller's test results, newest first."""
    with handle_db_error(db, "list test results"):
        results = (
            db.query(TestResult)
            .options(joinedload(TestResult.test))
            .filter(TestResult.user_id == current_user.id)
            .order_by(TestResult.created_at.desc(), TestResult.id.desc())
            .all()
        )

    if not results:
        raise_not_found(ErrorMessages.NO_RESULTS_FOR_USER)

    data = [
        TestResultListItem(
            test_result_id=r.id,
            test_id=r.test_id,
            title=r.test.title,
            created_at=r.created_at,
            user_id=r.user_id,
        )
        for r in results
    ]
    return success_response(data, "Test results retrieved successfully")


@router.get("/start/{test_id}")
def start_test(
    test_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Return a test with its questions in their saved order.

    Raises:
        HTTPException: 404 if the test or its ordered questions are missing,
            403 if the test is not approved or the caller's role or age does
            not match it
    """
    with handle_db_error(db, "start test"):
        test = _get_test_or_404(db, test_id, ErrorMessages.TEST_NOT_FOUND)

        if test.status != ApprovalStatus.APPROVED:
            raise_forbidden(ErrorMessages.TEST_NOT_APPROVED)
        if test.target != target_for_role(current_user.role):
            raise_forbidden(ErrorMessages.TEST_TARGET_MISMATCH)
        if not age_in_range(current_user.date_of_birth, test.min_age, test.max_age):
            raise_forbidden(ErrorMessages.TEST_AGE_MISMATCH)

        orders = (
            db.query(QuestionOrder)
            .options(joinedload(QuestionOrder.question))
            .filter(QuestionOrder.test_id == test.id)
            .order_by(QuestionOrder.order.asc())
            .all()
        )

    if not orders:
        raise_not_found(ErrorMessages.NO_QUESTIONS_FOR_TEST)

    data = StartTestResponse(
        test=TestSummary.model_validate(test),
        questions=[TestQuestion.from_question(o.question) for o in orders],
    )
    return success_response(data, "Test started successfully")


@router.post("/submit", status_code=status.HTTP_201_CREATED)
def submit_answers(
    submission: SubmitAnswers,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Score submitted answers and store the result.

    Answer values are summed per subskala and each total is bucketed into
    its band. Answers for questions outside the test are ignored.
    """
    with handle_db_error(db, "submit test answers"):
        test = _get_test_or_404(db, submission.test_id)
        if test.status != ApprovalStatus.APPROVED:
            raise_forbidden(ErrorMessages.SUBMIT_REQUIRES_APPROVED)

        answered_ids = {answer.question_id for answer in submission.answers}
        question_subskala = dict(
            db.query(Question.id, Question.subskala_id)
            .join(Subskala, Question.subskala_id == Subskala.id)
            .filter(Subskala.test_id == test.id, Question.id.in_(answered_ids))
            .all()
        )
        totals = aggregate_scores(
            ((answer.question_id, answer.value) for answer in submission.answers),
            question_subskala,
        )

        subskala_by_id = {
            s.id: s
            for s in db.query(Subskala).filter(Subskala.id.in_(list(totals))).all()
        }
        scores = [
            score_subskala(subskala_by_id[subskala_id], total)
            for subskala_id, total in sorted(totals.items())
        ]

        result = TestResult(user_id=current_user.id, test_id=test.id)
        result.subskala_results = [
            TestResultSubskala(
                subskala_id=score.subskala_id,
                score=score.score,
                category=score.category,
                description=score.description,
            )
            for score in scores
        ]
        db.add(result)
        db.commit()
        db.refresh(result)

    logger.info(
        f"User {current_user.id} submitted test {test.id} "
        f"({len(scores)} subskala scored)"
    )
    data = SubmitResultResponse(
        test_result_id=result.id,
        results=[
            SubskalaResultItem(
                subskala=score.name,
                score=score.score,
                category=score.category,
                description=score.description,
            )
            for score in scores
        ],
    )
    return success_response(data, "Test submitted successfully", status.HTTP_201_CREATED)


@router.get("/result/admin/{result_id}")
def get_result_for_admin(
    result_id: int,
    current_user: User = Depends(require_test_staff),
    db: Session = Depends(get_db),
):
    """Any user's result with the respondent's contact details."""
    with handle_db_error(db, "get test result"):
        result = db.query(TestResult).filter(TestResult.id == result_id).first()
        if result is None:
            raise_not_found(ErrorMessages.TEST_RESULT_NOT_FOUND)

        data = AdminTestResultDetail(
            test_result_id=result.id,
            title=result.test.title,
            created_at=result.created_at,
            user=ResultUser(
                id=result.user.id, name=result.user.name, email=result.user.email
            ),
            results=_result_items(result),
        )

    return success_response(data, "Test result retrieved successfully")


@router.get("/result/{result_id}")
def get_my_result(
    result_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """One of the caller's own results."""
    with handle_db_error(db, "get test result"):
        result = db.query(TestResult).filter(TestResult.id == result_id).first()
        if result is None:
            raise_not_found(ErrorMessages.TEST_RESULT_NOT_FOUND)
        if result.user_id != current_user.id:
            raise_forbidden(ErrorMessages.RESULT_ACCESS_DENIED)

        data = TestResultDetail(
            test_result_id=result.id,
            title=result.test.title,
            created_at=result.created_at,
            results=_result_items(result),
        )

    return success_response(data, "Test result retrieved successfully")


# ============================================================================
# Staff views of subskala, questions and results
# ============================================================================


@router.get("/results/by-test/{test_id}")
def list_results_by_test(
    test_id: int,
    current_user: User = Depends(require_test_staff),
    db: Session = Depends(get_db),
):
    """Every respondent's result for a test."""
    with handle_db_error(db, "list test results by test"):
        _get_test_or_404(db, test_id, ErrorMessages.TEST_NOT_FOUND)
        results = (
            db.query(TestResult)
            .options(joinedload(TestResult.user))
            .filter(TestResult.test_id == test_id)
            .order_by(TestResult.created_at.desc(), TestResult.id.desc())
            .all()
        )
        if not results:
            raise_not_found(ErrorMessages.NO_RESULTS_FOR_TEST)

        data = [
            TestResultByTest(
                id=r.id,
                user_id=r.user_id,
                test_id=r.test_id,
                created_at=r.created_at,
                user=ResultUser(
                    name=r.user.name,
                    email=r.user.email,
                    phone_number=r.user.phone_number,
                ),
                subskala_results=[
                    AdminSubskalaResult(
                        name=row.subskala.name,
                        score=row.score,
                        category=row.category,
                        description=row.description,
                    )
                    for row in r.subskala_results
                ],
            )
            for r in results
        ]

    return success_response(data, "Test results retrieved successfully")


@router.get("/subskala/by-test/{test_id}")
def list_subskala_by_test(
    test_id: int,
    current_user: User = Depends(require_test_staff),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "list subskala"):
        test = _get_test_or_404(db, test_id, ErrorMessages.TEST_NOT_FOUND)
        _deny_admin_on_approved(current_user, test, ErrorMessages.TEST_STATUS_ACCESS_DENIED)
        subskala = (
            db.query(Subskala).filter(Subskala.test_id == test_id).order_by(Subskala.id).all()
        )

    if not subskala:
        raise_not_found(ErrorMessages.NO_SUBSKALA_FOR_TEST)

    return success_response(
        [SubskalaResponse.model_validate(s) for s in subskala],
        "Subskala list retrieved successfully",
    )


@router.get("/question/by-subskala/{subskala_id}")
def list_questions_by_subskala(
    subskala_id: int,
    current_user: User = Depends(require_test_staff),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "list questions"):
        subskala = db.query(Subskala).filter(Subskala.id == subskala_id).first()
        if subskala is None:
            raise_not_found(ErrorMessages.SUBSKALA_NOT_FOUND)
        _deny_admin_on_approved(
            current_user, subskala.test, ErrorMessages.TEST_STATUS_ACCESS_DENIED
        )
        questions = (
            db.query(Question)
            .filter(Question.subskala_id == subskala_id)
            .order_by(Question.id)
            .all()
        )

    if not questions:
        raise_not_found(ErrorMessages.NO_QUESTIONS_FOR_SUBSKALA)

    return success_response(
        [QuestionResponse.model_validate(q) for q in questions],
        "Questions retrieved successfully",
    )


@router.put("/subskala/{subskala_id}")
def update_subskala(
    subskala_id: int,
    update: SubskalaUpdate,
    current_user: User = Depends(require_test_staff),
    db: Session = Depends(get_db),
):
    """
    Partially update a subskala.

    Band values are re-validated after merging the update into the stored
    values, so a partial edit cannot leave overlapping bands.
    """
    changes = update.model_dump(exclude_none=True)

    with handle_db_error(db, "update subskala"):
        subskala = db.query(Subskala).filter(Subskala.id == subskala_id).first()
        if subskala is None:
            raise_not_found(ErrorMessages.SUBSKALA_NOT_FOUND)
        _deny_admin_on_approved(
            current_user, subskala.test, ErrorMessages.CANNOT_EDIT_APPROVED_SUBSKALA
        )

        band_fields = [
            f"{bound}_value{i}" for i in (1, 2, 3) for bound in ("min", "max")
        ]
        merged = {
            name: changes.get(name, getattr(subskala, name)) for name in band_fields
        }
        errors = validate_bands(**merged)
        if errors:
            raise_bad_request(errors[0])

        for field, value in changes.items():
            setattr(subskala, field, value)
        db.commit()
        db.refresh(subskala)

    return success_response(
        SubskalaResponse.model_validate(subskala), "Subskala updated successfully"
    )


@router.put("/question/{question_id}")
def update_question(
    question_id: int,
    update: QuestionUpdate,
    current_user: User = Depends(require_test_staff),
    db: Session = Depends(get_db),
):
    with handle_db_error(db, "update question"):
        question = db.query(Question).filter(Question.id == question_id).first()
        if question is None:
            raise_not_found(ErrorMessages.QUESTION_NOT_FOUND)
        _deny_admin_on_approved(
            current_user,
            question.subskala.test,
            ErrorMessages.CANNOT_EDIT_APPROVED_QUESTION,
        )

        for field, value in update.model_dump(exclude_none=True).items():
            setattr(question, field, value)
        db.commit()
        db.refresh(question)

    return success_response(
        QuestionResponse.model_validate(question), "Question updated successfully"
    )


# Dynamic test routes go last so they don't shadow the fixed paths above


@router.get("/{test_id}")
def get_test(
    test_id: int,
    current_user: User = Depends(require_test_staff),
    db: Session = Depends(get_db),
):
    """
    Raises:
        HTTPException: 404 if missing, 403 for an ADMIN on an approved test
    """
    with handle_db_error(db, "get test"):
        test = _get_test_or_404(db, test_id)
    _deny_admin_on_approved(current_user, test, ErrorMessages.TEST_ACCESS_DENIED)
    return success_response(TestResponse.model_validate(test), "Test retrieved successfully")


@router.put("/{test_id}")
def update_test(
    test_id: int,
    update: TestUpdate,
    current_user: User = Depends(require_test_staff),
    db: Session = Depends(get_db),
):
    """Partially update a test; ADMINs cannot touch approved tests."""
    changes = update.model_dump(exclude_none=True)

    with handle_db_error(db, "update test"):
        test = _get_test_or_404(db, test_id)
        _deny_admin_on_approved(current_user, test, ErrorMessages.CANNOT_EDIT_APPROVED_TEST)

        min_age = changes.get("min_age", test.min_age)
        max_age = changes.get("max_age", test.max_age)
        if max_age < min_age:
            raise_bad_request("Maximum age must be greater than or equal to minimum age")

        for field, value in changes.items():
            setattr(test, field, value)
        db.commit()
        db.refresh(test)

    return success_response(TestResponse.model_validate(test), "Test updated successfully")
