"""Teacher endpoints: profile, classrooms, mastery overview, authored content."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from mathtutor.common.pagination import PaginationParams, paginate, pagination_params
from mathtutor.core.dependencies import CurrentAccount, get_teacher_for
from mathtutor.db.session import get_db
from mathtutor.models import Classroom, ClassroomStudent, ContentItem
from mathtutor.schemas.accounts import TeacherResponse, TeacherUpdate
from mathtutor.schemas.analytics import ClassroomPerformanceResponse, TeacherKCMastery
from mathtutor.schemas.classroom import ClassroomCreate, ClassroomResponse
from mathtutor.schemas.curriculum import (
    ContentItemCreate,
    ContentItemResponse,
    ContentItemsListResponse,
)
from mathtutor.services import performance
from mathtutor.services.curriculum import create_content_item

router = APIRouter(prefix="/teachers", tags=["Teachers"])


@router.get("/{teacher_id}", response_model=TeacherResponse, summary="Get teacher")
async def get_teacher(
    teacher_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> TeacherResponse:
    return TeacherResponse.model_validate(get_teacher_for(db, current_account, teacher_id))


@router.put("/{teacher_id}", response_model=TeacherResponse, summary="Update teacher profile")
async def update_teacher(
    teacher_id: int,
    request: TeacherUpdate,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> TeacherResponse:
    teacher = get_teacher_for(db, current_account, teacher_id)
    for field, value in request.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(teacher, field, value)
    db.commit()
    db.refresh(teacher)
    return TeacherResponse.model_validate(teacher)


@router.get(
    "/{teacher_id}/classrooms",
    response_model=list[ClassroomResponse],
    summary="List a teacher's classrooms",
)
async def list_classrooms(
    teacher_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> list[ClassroomResponse]:
    get_teacher_for(db, current_account, teacher_id)
    rows = db.execute(
        select(Classroom, func.count(ClassroomStudent.id))
        .outerjoin(ClassroomStudent, ClassroomStudent.classroom_id == Classroom.id)
        .where(Classroom.teacher_id == teacher_id)
        .group_by(Classroom.id)
        .order_by(Classroom.name, Classroom.id)
    ).all()
    return [
        ClassroomResponse.model_validate(classroom).model_copy(update={"student_count": count})
        for classroom, count in rows
    ]


@router.post(
    "/{teacher_id}/classrooms",
    response_model=ClassroomResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a classroom",
)
async def create_classroom(
    teacher_id: int,
    request: ClassroomCreate,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> ClassroomResponse:
    get_teacher_for(db, current_account, teacher_id)
    classroom = Classroom(teacher_id=teacher_id, name=request.name, settings=request.settings)
    db.add(classroom)
    db.commit()
    db.refresh(classroom)
    return ClassroomResponse.model_validate(classroom)


@router.get(
    "/{teacher_id}/classrooms/performance",
    response_model=list[ClassroomPerformanceResponse],
    summary="Performance of every classroom of a teacher",
)
async def get_all_classrooms_performance(
    teacher_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> list[ClassroomPerformanceResponse]:
    get_teacher_for(db, current_account, teacher_id)
    classrooms = db.scalars(
        select(Classroom).where(Classroom.teacher_id == teacher_id).order_by(Classroom.name, Classroom.id)
    ).all()
    return [
        ClassroomPerformanceResponse(**entry)
        for entry in performance.classrooms_performance(db, classrooms)
    ]


@router.get(
    "/{teacher_id}/knowledge-component-mastery",
    response_model=list[TeacherKCMastery],
    summary="Mastery per knowledge component across a teacher's students",
)
async def get_teacher_kc_mastery(
    teacher_id: int,
    current_account: CurrentAccount,
    grade_level: int | None = Query(None, ge=0, le=6),
    db: Session = Depends(get_db),
) -> list[TeacherKCMastery]:
    get_teacher_for(db, current_account, teacher_id)
    return [
        TeacherKCMastery(**entry)
        for entry in performance.teacher_kc_mastery(db, teacher_id, grade_level)
    ]


@router.get(
    "/{teacher_id}/content-items",
    response_model=ContentItemsListResponse,
    summary="Questions authored by a teacher",
)
async def list_teacher_content_items(
    teacher_id: int,
    current_account: CurrentAccount,
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db),
) -> ContentItemsListResponse:
    get_teacher_for(db, current_account, teacher_id)
    stmt = (
        select(ContentItem)
        .where(ContentItem.teacher_id == teacher_id)
        .order_by(ContentItem.id.desc())
    )
    items, total = paginate(db, stmt, pagination)
    return ContentItemsListResponse(
        items=[ContentItemResponse.model_validate(i) for i in items],
        page=pagination.page,
        page_size=pagination.page_size,
        total=total,
    )


@router.post(
    "/{teacher_id}/content-items",
    response_model=ContentItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Author a question",
    description="Teacher-authored questions start in pending_review unless a status is given.",
)
async def create_teacher_content_item(
    teacher_id: int,
    request: ContentItemCreate,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> ContentItemResponse:
    get_teacher_for(db, current_account, teacher_id)
    data = request.model_dump()
    if "status" not in request.model_fields_set:
        data["status"] = "pending_review"
    item = create_content_item(db, data, teacher_id=teacher_id)
    return ContentItemResponse.model_validate(item)
