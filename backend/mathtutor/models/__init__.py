"""Database models. Importing this package registers every table."""

from mathtutor.models.accounts import (
    ACCOUNT_MODELS,
    AccountRole,
    Admin,
    Parent,
    ParentStudent,
    Student,
    Teacher,
)
from mathtutor.models.classroom import Classroom, ClassroomStudent
from mathtutor.models.curriculum import (
    ContentItem,
    ContentStatus,
    ContentType,
    KCStatus,
    KnowledgeComponent,
)
from mathtutor.models.learning import (
    EngagementMetric,
    KnowledgeState,
    LearningPath,
    QuizResponse,
)
from mathtutor.models.messaging import Message, Notification, NotificationType

__all__ = [
    "ACCOUNT_MODELS",
    "AccountRole",
    "Admin",
    "Classroom",
    "ClassroomStudent",
    "ContentItem",
    "ContentStatus",
    "ContentType",
    "EngagementMetric",
    "KCStatus",
    "KnowledgeComponent",
    "KnowledgeState",
    "LearningPath",
    "Message",
    "Notification",
    "NotificationType",
    "Parent",
    "ParentStudent",
    "QuizResponse",
    "Student",
    "Teacher",
]
