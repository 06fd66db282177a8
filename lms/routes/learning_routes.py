"""
Learner progress endpoints: enrolled courses, course view, module completion.
"""

from fastapi import APIRouter, Depends

from lms.bootstrap import LearningServices, get_services
from lms.schemas.progress_schemas import (
    CompleteModuleResponse,
    CourseProgressResponse,
    EnrolledCourse,
    EnrolledCourseListResponse,
    ModuleProgressItem,
)
from lms.schemas.user_schemas import User
from lms.utils.auth import get_current_user
from lms.utils.common import iso_format

learning_routes = APIRouter()


@learning_routes.get("/learn/courses", response_model=EnrolledCourseListResponse)
async def my_courses(
    current_user: User = Depends(get_current_user),
    services: LearningServices = Depends(get_services),
) -> EnrolledCourseListResponse:
    courses = services.progress.enrolled_courses(current_user.id)
    return EnrolledCourseListResponse(
        courses=[
            EnrolledCourse(**{**c, "enrolled_at": iso_format(c["enrolled_at"])})
            for c in courses
        ]
    )


@learning_routes.get("/learn/courses/{course_id}/progress", response_model=CourseProgressResponse)
async def course_progress(
    course_id: str,
    current_user: User = Depends(get_current_user),
    services: LearningServices = Depends(get_services),
) -> CourseProgressResponse:
    """Course modules with completion flags. Every module is unlocked."""
    view = services.progress.course_progress(current_user.id, course_id)
    modules = [
        ModuleProgressItem(**{**m, "completed_at": iso_format(m["completed_at"])})
        for m in view.pop("modules")
    ]
    return CourseProgressResponse(modules=modules, **view)


@learning_routes.post("/learn/modules/{module_id}/complete", response_model=CompleteModuleResponse)
async def complete_module(
    module_id: str,
    current_user: User = Depends(get_current_user),
    services: LearningServices = Depends(get_services),
) -> CompleteModuleResponse:
    result = services.complete_module(current_user.id, module_id)
    return CompleteModuleResponse(
        message="Module completed" if result["newly_completed"] else "Module already completed",
        module_id=result["module_id"],
        course_id=result["course_id"],
        is_completed=True,
        already_completed=not result["newly_completed"],
        certificate_id=result["certificate_id"],
    )
