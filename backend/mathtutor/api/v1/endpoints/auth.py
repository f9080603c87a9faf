"""Authentication and self-registration endpoints."""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from mathtutor.core.app_exceptions import raise_app_error, raise_bad_request
from mathtutor.core.config import settings
from mathtutor.core.dependencies import CurrentAccount
from mathtutor.core.logging import get_logger
from mathtutor.core.security import create_access_token
from mathtutor.db.session import get_db
from mathtutor.models import AccountRole, ParentStudent, Student
from mathtutor.schemas.auth import (
    AccountResponse,
    LoginRequest,
    LoginResponse,
    ParentRegisterRequest,
    StudentRegisterRequest,
    TeacherRegisterRequest,
)
from mathtutor.services import accounts
from mathtutor.services.learning_path import generate_learning_path

logger = get_logger(__name__)

router = APIRouter(tags=["Auth"])


def _account_response(account) -> AccountResponse:
    return AccountResponse.model_validate(account)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in",
    description="Verify email and password and return a signed access token.",
)
async def login(
    request_data: LoginRequest,
    db: Session = Depends(get_db),
) -> LoginResponse:
    account = accounts.authenticate(db, request_data.email, request_data.password)
    if account is None:
        logger.info("Login rejected", extra={"email": request_data.email})
        raise_app_error(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="UNAUTHORIZED",
            message="Invalid email or password",
        )

    logger.info("Login succeeded", extra={"account_id": account.id, "role": account.role.value})
    return LoginResponse(
        access_token=create_access_token(account.id, account.role.value),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        role=account.role.value,
        user=_account_response(account),
    )


@router.post(
    "/register/student",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a student",
    description="Create a student account, an initial learning path and, "
    "if parent_email matches a parent, the parent link.",
)
async def register_student(
    request_data: StudentRegisterRequest,
    db: Session = Depends(get_db),
) -> AccountResponse:
    student = accounts.create_account(
        db,
        AccountRole.STUDENT,
        name=request_data.name,
        email=request_data.email,
        password=request_data.password,
        grade_level=request_data.grade_level,
        language_preference=request_data.language_preference,
    )

    # Optional steps: failures are logged and do not fail registration
    accounts.best_effort(
        db, "initial learning path", lambda: generate_learning_path(db, student)
    )
    if request_data.parent_email:
        accounts.best_effort(
            db,
            "parent link",
            lambda: accounts.link_parent_by_email(db, student, request_data.parent_email),
        )

    db.commit()
    logger.info("Student registered", extra={"student_id": student.id})
    return _account_response(student)


@router.post(
    "/register/teacher",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a teacher",
)
async def register_teacher(
    request_data: TeacherRegisterRequest,
    db: Session = Depends(get_db),
) -> AccountResponse:
    teacher = accounts.create_account(
        db,
        AccountRole.TEACHER,
        name=request_data.name,
        email=request_data.email,
        password=request_data.password,
        subject_taught=request_data.subject_taught,
    )
    db.commit()
    logger.info("Teacher registered", extra={"teacher_id": teacher.id})
    return _account_response(teacher)


@router.post(
    "/register/parent",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a parent",
    description="Create a parent account linked to existing students by email. "
    "At least one of the given student emails must exist.",
)
async def register_parent(
    request_data: ParentRegisterRequest,
    db: Session = Depends(get_db),
) -> AccountResponse:
    students = db.scalars(
        select(Student).where(Student.auth_id.in_(request_data.student_emails))
    ).all()
    if not students:
        raise_bad_request(
            "None of the given student emails belong to a registered student",
            {"student_emails": request_data.student_emails},
        )

    parent = accounts.create_account(
        db,
        AccountRole.PARENT,
        name=request_data.name,
        email=request_data.email,
        password=request_data.password,
        phone_number=request_data.phone_number,
    )
    for student in students:
        db.add(ParentStudent(parent_id=parent.id, student_id=student.id))
    db.commit()

    unmatched = sorted(set(request_data.student_emails) - {s.auth_id for s in students})
    if unmatched:
        logger.info(
            "Parent registered with unmatched student emails",
            extra={"parent_id": parent.id, "unmatched": unmatched},
        )
    return _account_response(parent)


@router.get(
    "/me",
    response_model=AccountResponse,
    summary="Current account",
)
async def me(current_account: CurrentAccount) -> AccountResponse:
    return _account_response(current_account)
