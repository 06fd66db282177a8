"""
Learner progress schemas (course view, enrolled course list, module completion).
"""

from pydantic import BaseModel
from typing import Optional


class ModuleProgressItem(BaseModel):
    module_id: str
    title: str
    order_index: int
    quiz_id: Optional[str] = None
    is_completed: bool
    completed_at: Optional[str] = None
    is_passed: Optional[bool] = None  # None for modules without a quiz
    is_locked: bool = False


class CourseProgressResponse(BaseModel):
    course_id: str
    title: str
    modules: list[ModuleProgressItem]
    completed_modules: int
    total_modules: int
    completion_ratio: float
    progress_percent: int
    is_completed: bool


class EnrolledCourse(BaseModel):
    course_id: str
    title: Optional[str] = None
    enrolled_at: Optional[str] = None
    completed_modules: int
    total_modules: int
    progress_percent: int


class EnrolledCourseListResponse(BaseModel):
    courses: list[EnrolledCourse]


class CompleteModuleResponse(BaseModel):
    message: str
    module_id: str
    course_id: str
    is_completed: bool
    already_completed: bool
    certificate_id: Optional[str] = None
