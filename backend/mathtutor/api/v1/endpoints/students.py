"""Student endpoints: profile, responses, mastery, learning path, contact."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from mathtutor.api.v1.endpoints.messages import message_responses
from mathtutor.common.pagination import PaginationParams, paginate, pagination_params
from mathtutor.core.app_exceptions import raise_forbidden, raise_not_found
from mathtutor.core.dependencies import (
    CurrentAccount,
    get_accessible_student,
    require_roles,
)
from mathtutor.core.logging import get_logger
from mathtutor.db.session import get_db
from mathtutor.learning_engine.mastery import is_mastered
from mathtutor.learning_engine.mastery.service import get_params, submit_response
from mathtutor.models import (
    AccountRole,
    ContentItem,
    EngagementMetric,
    KnowledgeComponent,
    KnowledgeState,
    QuizResponse,
    Student,
)
from mathtutor.models.accounts import AccountMixin
from mathtutor.schemas.accounts import StudentResponse, StudentsListResponse, StudentUpdate
from mathtutor.schemas.analytics import StudentPerformanceResponse
from mathtutor.schemas.auth import PasswordChangeRequest
from mathtutor.schemas.learning import (
    EngagementCreate,
    EngagementResponse,
    KnowledgeStateResponse,
    LearningPathResponse,
    RecommendedContentResponse,
    ResponseRecord,
    ResponsesListResponse,
    ResponseSubmit,
    ResponseSubmitResult,
    StrugglingKC,
)
from mathtutor.schemas.messaging import ContactRequest, MessageResponse
from mathtutor.services import accounts, learning_path, messaging, performance

logger = get_logger(__name__)

router = APIRouter(prefix="/students", tags=["Students"])


def _ensure_student_writer(account: AccountMixin, student_id: int) -> None:
    """Only the student themself or an admin may write a student's records."""
    if account.role == AccountRole.ADMIN:
        return
    if account.role != AccountRole.STUDENT or account.id != student_id:
        raise_forbidden("Only the student or an admin may modify these records")


@router.get(
    "",
    response_model=StudentsListResponse,
    summary="List students",
    description="Paginated list of students with optional grade and name/email search.",
)
async def list_students(
    grade_level: Optional[int] = Query(None, ge=0, le=6, description="Filter by grade"),
    q: Optional[str] = Query(None, max_length=100, description="Search by name or email"),
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(require_roles(AccountRole.TEACHER, AccountRole.ADMIN)),
) -> StudentsListResponse:
    stmt = select(Student)
    if grade_level is not None:
        stmt = stmt.where(Student.grade_level == grade_level)
    if q:
        term = f"%{q.lower()}%"
        stmt = stmt.where(or_(func.lower(Student.name).like(term), Student.auth_id.like(term)))

    students, total = paginate(db, stmt.order_by(Student.name, Student.id), pagination)
    return StudentsListResponse(
        items=[StudentResponse.model_validate(s) for s in students],
        page=pagination.page,
        page_size=pagination.page_size,
        total=total,
    )


@router.get("/{student_id}", response_model=StudentResponse, summary="Get student")
async def get_student(
    student_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> StudentResponse:
    return StudentResponse.model_validate(get_accessible_student(db, current_account, student_id))


@router.put("/{student_id}", response_model=StudentResponse, summary="Update student profile")
async def update_student(
    student_id: int,
    request: StudentUpdate,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> StudentResponse:
    _ensure_student_writer(current_account, student_id)
    student = get_accessible_student(db, current_account, student_id)

    for field, value in request.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(student, field, value)
    db.commit()
    db.refresh(student)
    return StudentResponse.model_validate(student)


@router.put(
    "/{student_id}/password",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Change own password",
)
async def change_student_password(
    student_id: int,
    request: PasswordChangeRequest,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> None:
    if current_account.role != AccountRole.STUDENT or current_account.id != student_id:
        raise_forbidden("Students may only change their own password")
    accounts.change_password(db, current_account, request.current_password, request.new_password)


@router.get(
    "/{student_id}/knowledge-states",
    response_model=list[KnowledgeStateResponse],
    summary="Mastery per knowledge component",
)
async def get_knowledge_states(
    student_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> list[KnowledgeStateResponse]:
    get_accessible_student(db, current_account, student_id)
    params = get_params()
    rows = db.execute(
        select(KnowledgeState, KnowledgeComponent)
        .join(KnowledgeComponent, KnowledgeComponent.id == KnowledgeState.knowledge_component_id)
        .where(KnowledgeState.student_id == student_id)
        .order_by(KnowledgeComponent.curriculum_code, KnowledgeComponent.id)
    ).all()
    return [
        KnowledgeStateResponse(
            id=state.id,
            knowledge_component_id=kc.id,
            knowledge_component_name=kc.name,
            curriculum_code=kc.curriculum_code,
            p_mastery=state.p_mastery,
            n_attempts=state.n_attempts,
            last_attempt_at=state.last_attempt_at,
            mastered=is_mastered(state.p_mastery, params),
        )
        for state, kc in rows
    ]


@router.post(
    "/{student_id}/responses",
    response_model=ResponseSubmitResult,
    status_code=status.HTTP_201_CREATED,
    summary="Submit an answer",
    description="Record the answer and update mastery in one transaction. "
    "Practice-mode answers are recorded without touching mastery.",
)
async def create_response(
    student_id: int,
    request: ResponseSubmit,
    current_account: CurrentAccount,
    mode: Optional[Literal["sequential"]] = Query(None, description="Return the next question"),
    db: Session = Depends(get_db),
) -> ResponseSubmitResult:
    _ensure_student_writer(current_account, student_id)
    get_accessible_student(db, current_account, student_id)

    result = submit_response(
        db,
        student_id=student_id,
        content_item_id=request.content_item_id,
        correct=request.correct,
        answer=request.answer,
        time_spent=request.time_spent,
        interaction_data=request.interaction_data,
        practice_mode=request.practice_mode,
        sequential=mode == "sequential",
    )
    return ResponseSubmitResult(
        message=(
            "Practice response recorded"
            if result.practice_mode
            else "Response processed successfully"
        ),
        response_id=result.response_id,
        practice_mode=result.practice_mode,
        knowledge_component_id=result.knowledge_component_id,
        prior_mastery=result.prior_mastery,
        new_mastery=result.new_mastery,
        next_content_item_id=result.next_content_item_id,
        quiz_completion_status=result.quiz_completion_status,
    )


@router.get(
    "/{student_id}/responses",
    response_model=ResponsesListResponse,
    summary="List a student's answers",
)
async def list_responses(
    student_id: int,
    current_account: CurrentAccount,
    knowledge_component_id: Optional[int] = Query(None),
    correct: Optional[bool] = Query(None),
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db),
) -> ResponsesListResponse:
    get_accessible_student(db, current_account, student_id)
    stmt = select(QuizResponse).where(QuizResponse.student_id == student_id)
    if knowledge_component_id is not None:
        stmt = stmt.join(ContentItem, ContentItem.id == QuizResponse.content_item_id).where(
            ContentItem.knowledge_component_id == knowledge_component_id
        )
    if correct is not None:
        stmt = stmt.where(QuizResponse.correct == correct)

    rows, total = paginate(
        db, stmt.order_by(QuizResponse.created_at.desc(), QuizResponse.id.desc()), pagination
    )
    return ResponsesListResponse(
        items=[ResponseRecord.model_validate(r) for r in rows],
        page=pagination.page,
        page_size=pagination.page_size,
        total=total,
    )


@router.get(
    "/{student_id}/struggling-kcs",
    response_model=list[StrugglingKC],
    summary="Lowest-mastery topics with a practice question each",
)
async def get_struggling_kcs(
    student_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> list[StrugglingKC]:
    get_accessible_student(db, current_account, student_id)
    return [StrugglingKC(**row) for row in performance.struggling_kcs(db, student_id)]


@router.get(
    "/{student_id}/performance",
    response_model=StudentPerformanceResponse,
    summary="Accuracy and mastery per knowledge component",
)
async def get_student_performance(
    student_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> StudentPerformanceResponse:
    get_accessible_student(db, current_account, student_id)
    return StudentPerformanceResponse(**performance.student_performance(db, student_id))


@router.get(
    "/{student_id}/learning-path",
    response_model=LearningPathResponse,
    summary="Current learning path",
    description="Returns the current path, generating one for the student's grade if none exists.",
)
async def get_learning_path(
    student_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> LearningPathResponse:
    student = get_accessible_student(db, current_account, student_id)
    path = learning_path.get_active_path(db, student_id)
    if path is None:
        path = learning_path.generate_learning_path(db, student)
        db.commit()
    return LearningPathResponse(**learning_path.describe_path(db, path))


@router.post(
    "/{student_id}/learning-path",
    response_model=LearningPathResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Regenerate learning path",
)
async def regenerate_learning_path(
    student_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> LearningPathResponse:
    if current_account.role == AccountRole.PARENT:
        raise_forbidden("Parents cannot change learning paths")
    student = get_accessible_student(db, current_account, student_id)
    path = learning_path.generate_learning_path(db, student)
    db.commit()
    return LearningPathResponse(**learning_path.describe_path(db, path))


@router.put(
    "/{student_id}/learning-path/{kc_id}/complete",
    response_model=LearningPathResponse,
    summary="Mark a knowledge component completed",
)
async def complete_learning_path_kc(
    student_id: int,
    kc_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> LearningPathResponse:
    _ensure_student_writer(current_account, student_id)
    get_accessible_student(db, current_account, student_id)
    path = learning_path.get_active_path(db, student_id)
    if path is None:
        raise_not_found("Learning path for student", student_id)
    path = learning_path.complete_knowledge_component(db, path, kc_id)
    return LearningPathResponse(**learning_path.describe_path(db, path))


@router.get(
    "/{student_id}/recommended-content",
    response_model=RecommendedContentResponse,
    summary="Next recommended question",
)
async def get_recommended_content(
    student_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> RecommendedContentResponse:
    student = get_accessible_student(db, current_account, student_id)
    return RecommendedContentResponse(**learning_path.recommend_content(db, student))


@router.post(
    "/{student_id}/engagement",
    response_model=EngagementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record engagement metrics for a session",
)
async def record_engagement(
    student_id: int,
    request: EngagementCreate,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> EngagementResponse:
    _ensure_student_writer(current_account, student_id)
    get_accessible_student(db, current_account, student_id)
    metric = EngagementMetric(student_id=student_id, **request.model_dump())
    db.add(metric)
    db.commit()
    db.refresh(metric)
    return EngagementResponse.model_validate(metric)


@router.post(
    "/{student_id}/contact",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Message a student",
    description="Teachers and admins send a message to the student's inbox.",
)
async def contact_student(
    student_id: int,
    request: ContactRequest,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(require_roles(AccountRole.TEACHER, AccountRole.ADMIN)),
) -> MessageResponse:
    message = messaging.send_message(
        db, current_account, AccountRole.STUDENT, student_id, request.body, request.subject
    )
    logger.info(
        "Student contacted",
        extra={"student_id": student_id, "sender_role": current_account.role.value},
    )
    return message_responses(db, [message])[0]
