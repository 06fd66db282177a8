"""
Quiz attempt schemas. Option correctness is never part of a learner response.
"""

from pydantic import BaseModel
from typing import Optional


class OptionView(BaseModel):
    option_id: str
    text: str


class QuestionView(BaseModel):
    question_id: str
    text: str
    options: list[OptionView]


class StartQuizResponse(BaseModel):
    attempt_id: str
    quiz_id: str
    title: str
    description: Optional[str] = None
    status: str
    resumed: bool
    pass_threshold: float
    max_attempts: int
    time_limit_minutes: int
    started_at: str
    deadline: Optional[str] = None
    questions: list[QuestionView]
    partial_answers: dict[str, str]  # question_id -> selected_option_id
    best_score: Optional[float] = None
    best_score_at: Optional[str] = None
    has_passed: bool
    attempts_used: int


class SaveAnswerRequest(BaseModel):
    question_id: str
    selected_option_id: Optional[str] = None


class SaveAnswerResponse(BaseModel):
    message: str
    attempt_id: str
    question_id: str
    selected_option_id: str


class SubmitQuizResponse(BaseModel):
    message: str
    attempt_id: str
    quiz_id: str
    score: float
    correct_count: int
    total_questions: int
    is_passed: bool
    pass_threshold: float
    is_new_best: bool
    best_score: float
    module_id: Optional[str] = None
    module_completed: bool
    certificate_id: Optional[str] = None
    completed_at: Optional[str] = None
