"""Classroom endpoints: roster and class performance."""

from fastapi import APIRouter, Depends, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from mathtutor.core.app_exceptions import raise_not_found
from mathtutor.core.dependencies import get_owned_classroom, require_roles
from mathtutor.core.logging import get_logger
from mathtutor.db.session import get_db
from mathtutor.models import AccountRole, ClassroomStudent, Student
from mathtutor.models.accounts import AccountMixin
from mathtutor.schemas.accounts import LinkResult, StudentIdsRequest, StudentResponse
from mathtutor.schemas.analytics import ClassroomKCSummary, ClassroomPerformanceResponse
from mathtutor.schemas.classroom import ClassroomResponse
from mathtutor.services import accounts, performance

logger = get_logger(__name__)

router = APIRouter(prefix="/classrooms", tags=["Classrooms"])

teacher_or_admin = require_roles(AccountRole.TEACHER, AccountRole.ADMIN)


@router.get("/{classroom_id}", response_model=ClassroomResponse, summary="Get classroom")
async def get_classroom(
    classroom_id: int,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(teacher_or_admin),
) -> ClassroomResponse:
    classroom = get_owned_classroom(db, current_account, classroom_id)
    count = len(accounts.enrolled_student_ids(db, classroom_id))
    return ClassroomResponse.model_validate(classroom).model_copy(update={"student_count": count})


@router.get(
    "/{classroom_id}/students",
    response_model=list[StudentResponse],
    summary="List enrolled students",
)
async def list_classroom_students(
    classroom_id: int,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(teacher_or_admin),
) -> list[StudentResponse]:
    get_owned_classroom(db, current_account, classroom_id)
    students = db.scalars(
        select(Student)
        .join(ClassroomStudent, ClassroomStudent.student_id == Student.id)
        .where(ClassroomStudent.classroom_id == classroom_id)
        .order_by(Student.name, Student.id)
    ).all()
    return [StudentResponse.model_validate(s) for s in students]


@router.post(
    "/{classroom_id}/students",
    response_model=LinkResult,
    summary="Enroll students",
    description="Enroll a batch of students. Already enrolled ids are reported, not duplicated.",
)
async def add_classroom_students(
    classroom_id: int,
    request: StudentIdsRequest,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(teacher_or_admin),
) -> LinkResult:
    get_owned_classroom(db, current_account, classroom_id)
    added, present = accounts.link_students(
        db,
        request.student_ids,
        accounts.enrolled_student_ids(db, classroom_id),
        lambda sid: ClassroomStudent(classroom_id=classroom_id, student_id=sid),
    )
    logger.info(
        "Students enrolled",
        extra={"classroom_id": classroom_id, "added": added, "already_present": present},
    )
    return LinkResult(added=added, already_present=present)


@router.delete(
    "/{classroom_id}/students/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a student from a classroom",
)
async def remove_classroom_student(
    classroom_id: int,
    student_id: int,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(teacher_or_admin),
) -> None:
    get_owned_classroom(db, current_account, classroom_id)
    result = db.execute(
        delete(ClassroomStudent).where(
            ClassroomStudent.classroom_id == classroom_id,
            ClassroomStudent.student_id == student_id,
        )
    )
    if result.rowcount == 0:
        db.rollback()
        raise_not_found("Enrollment of student", student_id)
    db.commit()


@router.get(
    "/{classroom_id}/performance",
    response_model=ClassroomPerformanceResponse,
    summary="Per-student performance and intervention flags",
)
async def get_classroom_performance(
    classroom_id: int,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(teacher_or_admin),
) -> ClassroomPerformanceResponse:
    classroom = get_owned_classroom(db, current_account, classroom_id)
    return ClassroomPerformanceResponse(**performance.classrooms_performance(db, [classroom])[0])


@router.get(
    "/{classroom_id}/knowledge-components",
    response_model=list[ClassroomKCSummary],
    summary="Class-wide mastery per knowledge component",
)
async def get_classroom_kc_summary(
    classroom_id: int,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(teacher_or_admin),
) -> list[ClassroomKCSummary]:
    get_owned_classroom(db, current_account, classroom_id)
    return [ClassroomKCSummary(**row) for row in performance.classroom_kc_summary(db, classroom_id)]
