"""Parent endpoints: linked children, weekly reports and messages."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from mathtutor.api.v1.endpoints.messages import message_responses
from mathtutor.common.pagination import PaginationParams, pagination_params
from mathtutor.core.app_exceptions import raise_not_found
from mathtutor.core.dependencies import CurrentAccount, get_parent_for
from mathtutor.db.session import get_db
from mathtutor.models import ParentStudent, Student
from mathtutor.schemas.accounts import (
    LinkResult,
    ParentResponse,
    StudentIdsRequest,
    StudentResponse,
)
from mathtutor.schemas.analytics import WeeklyReportResponse
from mathtutor.schemas.messaging import MessagesListResponse
from mathtutor.services import accounts, messaging
from mathtutor.services.reports import weekly_report

router = APIRouter(prefix="/parents", tags=["Parents"])


@router.get("/{parent_id}", response_model=ParentResponse, summary="Get parent")
async def get_parent(
    parent_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> ParentResponse:
    return ParentResponse.model_validate(get_parent_for(db, current_account, parent_id))


@router.get(
    "/{parent_id}/children",
    response_model=list[StudentResponse],
    summary="List linked children",
)
async def list_children(
    parent_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> list[StudentResponse]:
    get_parent_for(db, current_account, parent_id)
    children = db.scalars(
        select(Student)
        .join(ParentStudent, ParentStudent.student_id == Student.id)
        .where(ParentStudent.parent_id == parent_id)
        .order_by(Student.name, Student.id)
    ).all()
    return [StudentResponse.model_validate(c) for c in children]


@router.post("/{parent_id}/children", response_model=LinkResult, summary="Link children")
async def link_children(
    parent_id: int,
    request: StudentIdsRequest,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> LinkResult:
    get_parent_for(db, current_account, parent_id)
    added, present = accounts.link_students(
        db,
        request.student_ids,
        accounts.linked_student_ids(db, parent_id),
        lambda sid: ParentStudent(parent_id=parent_id, student_id=sid),
    )
    return LinkResult(added=added, already_present=present)


@router.delete(
    "/{parent_id}/children/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unlink a child",
)
async def unlink_child(
    parent_id: int,
    student_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> None:
    get_parent_for(db, current_account, parent_id)
    result = db.execute(
        delete(ParentStudent).where(
            ParentStudent.parent_id == parent_id,
            ParentStudent.student_id == student_id,
        )
    )
    if result.rowcount == 0:
        db.rollback()
        raise_not_found("Link to student", student_id)
    db.commit()


@router.get(
    "/{parent_id}/children/{student_id}/weekly-report",
    response_model=WeeklyReportResponse,
    summary="Last seven days of a child's work",
)
async def get_weekly_report(
    parent_id: int,
    student_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> WeeklyReportResponse:
    get_parent_for(db, current_account, parent_id)
    if student_id not in accounts.linked_student_ids(db, parent_id):
        raise_not_found("Linked student", student_id)
    student = db.get(Student, student_id)
    return WeeklyReportResponse(**weekly_report(db, student))


@router.get(
    "/{parent_id}/messages",
    response_model=MessagesListResponse,
    summary="Messages received by a parent",
)
async def get_parent_messages(
    parent_id: int,
    current_account: CurrentAccount,
    unread_only: bool = Query(False),
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db),
) -> MessagesListResponse:
    parent = get_parent_for(db, current_account, parent_id)
    messages, total, unread = messaging.list_messages(db, parent, "inbox", pagination, unread_only)
    return MessagesListResponse(
        items=message_responses(db, messages),
        page=pagination.page,
        page_size=pagination.page_size,
        total=total,
        unread_count=unread,
    )
