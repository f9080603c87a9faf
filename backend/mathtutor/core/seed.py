"""Seed demo accounts and a small grade-3 curriculum for development."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from mathtutor.core.config import settings
from mathtutor.core.logging import get_logger
from mathtutor.core.security import hash_password
from mathtutor.db.session import SessionLocal
from mathtutor.models import (
    ACCOUNT_MODELS,
    AccountRole,
    Classroom,
    ClassroomStudent,
    ContentItem,
    KnowledgeComponent,
    ParentStudent,
)
from mathtutor.services.learning_path import generate_learning_path

logger = get_logger(__name__)

DEMO_ACCOUNTS = {
    AccountRole.ADMIN: ("Admin User", "admin@example.com", "Admin123!", {}),
    AccountRole.TEACHER: (
        "Teacher User",
        "teacher@example.com",
        "Teacher123!",
        {"subject_taught": "Mathematics"},
    ),
    AccountRole.STUDENT: ("Student User", "student@example.com", "Student123!", {"grade_level": 3}),
    AccountRole.PARENT: ("Parent User", "parent@example.com", "Parent123!", {}),
}

# (curriculum_code, name, [(type, prompt, options, answer, difficulty), ...])
DEMO_CURRICULUM = [
    (
        "3.OA.A.1",
        "Interpret products of whole numbers",
        [
            ("numeric", "What is 3 x 4?", None, "12", 1),
            ("multiple_choice", "Which equals 5 groups of 2?", ["7", "10", "52"], "10", 2),
            ("word_problem", "4 bags hold 6 apples each. How many apples?", None, "24", 3),
        ],
    ),
    (
        "3.NBT.A.2",
        "Add and subtract within 1000",
        [
            ("numeric", "What is 245 + 132?", None, "377", 1),
            ("numeric", "What is 600 - 275?", None, "325", 2),
            ("true_false", "True or false: 499 + 1 = 500", ["True", "False"], "True", 1),
        ],
    ),
    (
        "3.NF.A.1",
        "Understand unit fractions",
        [
            ("multiple_choice", "Which fraction is one of 4 equal parts?", ["1/2", "1/3", "1/4"], "1/4", 1),
            ("fill_in_the_blank", "A pizza cut into 8 equal slices: one slice is 1/__", None, "8", 2),
        ],
    ),
]


def _get_or_create_account(db: Session, role: AccountRole):
    name, email, password, fields = DEMO_ACCOUNTS[role]
    model = ACCOUNT_MODELS[role]
    account = db.scalar(select(model).where(model.auth_id == email))
    if account is not None:
        return account, False
    account = model(name=name, auth_id=email, password_hash=hash_password(password), **fields)
    db.add(account)
    db.flush()
    logger.info(f"Created demo {role.value} account: {email} / {password}")
    return account, True


def _seed_curriculum(db: Session) -> None:
    for code, name, items in DEMO_CURRICULUM:
        if db.scalar(select(KnowledgeComponent.id).where(KnowledgeComponent.curriculum_code == code)):
            continue
        kc = KnowledgeComponent(name=name, curriculum_code=code, grade_level=3)
        db.add(kc)
        db.flush()
        for item_type, prompt, options, answer, difficulty in items:
            db.add(
                ContentItem(
                    type=item_type,
                    content=prompt,
                    options=options,
                    correct_answer=answer,
                    difficulty=difficulty,
                    knowledge_component_id=kc.id,
                )
            )
    db.flush()


def seed_demo_data() -> None:
    """Seed demo data if enabled in the dev environment. Idempotent."""
    if settings.ENV != "dev" or not settings.SEED_DEMO_DATA:
        logger.info("Demo data seeding skipped (ENV != dev or SEED_DEMO_DATA=false)")
        return

    db = SessionLocal()
    try:
        _seed_curriculum(db)
        accounts = {role: _get_or_create_account(db, role) for role in DEMO_ACCOUNTS}
        student, student_created = accounts[AccountRole.STUDENT]
        teacher, _ = accounts[AccountRole.TEACHER]
        parent, _ = accounts[AccountRole.PARENT]

        if student_created:
            generate_learning_path(db, student)
            db.add(ParentStudent(parent_id=parent.id, student_id=student.id))
            classroom = db.scalar(select(Classroom).where(Classroom.teacher_id == teacher.id))
            if classroom is None:
                classroom = Classroom(name="Grade 3 Math", teacher_id=teacher.id)
                db.add(classroom)
                db.flush()
            db.add(ClassroomStudent(classroom_id=classroom.id, student_id=student.id))

        db.commit()
        logger.info("Demo data seeded successfully")

    except Exception as e:
        db.rollback()
        logger.error(f"Error seeding demo data: {e}", exc_info=True)
        raise
    finally:
        db.close()
