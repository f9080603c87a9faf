"""API v1 router - includes all v1 endpoints."""

from fastapi import APIRouter

from mathtutor.api.v1.endpoints import (
    admin_content,
    admin_users,
    auth,
    classrooms,
    curriculum,
    health,
    messages,
    notifications,
    parents,
    students,
    teachers,
)

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(health.router, prefix="", tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(students.router)
api_router.include_router(teachers.router)
api_router.include_router(classrooms.router)
api_router.include_router(parents.router)
api_router.include_router(messages.router)
api_router.include_router(notifications.router)
api_router.include_router(curriculum.router)
api_router.include_router(admin_users.router)
api_router.include_router(admin_content.router)
