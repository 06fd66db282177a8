"""
Quiz attempt endpoints: start or resume, save partial answer, submit.
"""

from fastapi import APIRouter, Depends

from lms.bootstrap import LearningServices, get_services
from lms.models.status import AttemptStatus
from lms.schemas.quiz_schemas import (
    SaveAnswerRequest,
    SaveAnswerResponse,
    StartQuizResponse,
    SubmitQuizResponse,
)
from lms.schemas.user_schemas import User
from lms.utils.auth import get_current_user
from lms.utils.common import iso_format

quiz_routes = APIRouter()


@quiz_routes.post("/learn/quizzes/{quiz_id}/start", response_model=StartQuizResponse)
async def start_quiz(
    quiz_id: str,
    current_user: User = Depends(get_current_user),
    services: LearningServices = Depends(get_services),
) -> StartQuizResponse:
    """Resume the open attempt (with saved answers) or start a new one."""
    s = services.quizzes.start_or_resume(current_user.id, quiz_id)
    s.update(
        status=AttemptStatus(s["status"]).value,
        started_at=iso_format(s["started_at"]),
        deadline=iso_format(s["deadline"]),
        best_score_at=iso_format(s["best_score_at"]),
    )
    return StartQuizResponse(**s)


@quiz_routes.put("/learn/attempts/{attempt_id}/answers", response_model=SaveAnswerResponse)
async def save_answer(
    attempt_id: str,
    req: SaveAnswerRequest,
    current_user: User = Depends(get_current_user),
    services: LearningServices = Depends(get_services),
) -> SaveAnswerResponse:
    answer = services.quizzes.save_answer(attempt_id, current_user.id, req.question_id, req.selected_option_id)
    return SaveAnswerResponse(
        message="Answer saved",
        attempt_id=answer.attempt_id,
        question_id=answer.question_id,
        selected_option_id=answer.selected_option_id,
    )


@quiz_routes.post("/learn/attempts/{attempt_id}/submit", response_model=SubmitQuizResponse)
async def submit_quiz(
    attempt_id: str,
    current_user: User = Depends(get_current_user),
    services: LearningServices = Depends(get_services),
) -> SubmitQuizResponse:
    result = services.quizzes.submit(attempt_id, current_user.id)
    result["completed_at"] = iso_format(result["completed_at"])
    return SubmitQuizResponse(message="Quiz submitted", **result)
