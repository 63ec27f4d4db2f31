from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from app.core.constants import ExamAttemptStatusEnum
from app.schemas.question import PresentedOption, PresentedQuestion

class ExamAttemptBase(BaseModel):
    user_id: int
    language: str
    start_time: datetime
    time_limit_minutes: int
    total_questions: int
    picture_questions_count: int
    passing_score: int
    status: ExamAttemptStatusEnum = Field(default=ExamAttemptStatusEnum.IN_PROGRESS)

class ExamAttemptCreate(ExamAttemptBase):
    pass

class ExamAttemptUpdate(BaseModel):
    end_time: Optional[datetime] = None
    score: Optional[int] = None
    passed: Optional[bool] = None
    status: Optional[ExamAttemptStatusEnum] = None

class ExamAttempt(ExamAttemptBase):
    id: int
    end_time: Optional[datetime] = None
    score: Optional[int] = None
    passed: Optional[bool] = None
    percentage: Optional[float] = None
    time_taken_minutes: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class ExamStartRequest(BaseModel):
    language: str

class ExamSession(BaseModel):
    """Payload returned when an attempt starts, or when an open attempt is fetched."""
    exam_attempt_id: int
    language: str
    status: str
    start_time: datetime
    deadline: datetime
    time_limit_minutes: int
    total_questions: int
    picture_questions_count: int
    passing_score: int
    questions: List[PresentedQuestion]

class AnswerSubmitRequest(BaseModel):
    question_id: int
    answer: str

class ExamResult(BaseModel):
    exam_attempt_id: int
    score: int
    total_questions: int
    passing_score: int
    passed: bool
    percentage: float
    correct_answers: int
    incorrect_answers: int
    unanswered: int
    time_taken_minutes: int
    auto_submitted: bool = False

class AnswerSubmitResponse(BaseModel):
    question_id: int
    answered: bool
    auto_submitted: bool = False
    result: Optional[ExamResult] = None

class ReviewQuestion(BaseModel):
    question_number: int
    question_id: int
    text: str
    image_url: Optional[str] = None
    options: List[PresentedOption]
    user_answer: Optional[str] = None
    correct_answer: str
    is_correct: bool
    explanation: Optional[str] = None

class ExamReview(BaseModel):
    exam_attempt_id: int
    score: int
    total_questions: int
    passing_score: int
    passed: bool
    percentage: float
    questions: List[ReviewQuestion]

class ExamStats(BaseModel):
    total_exams: int
    passed_exams: int
    failed_exams: int
    pass_rate: float
    average_score: float
    highest_score: int
    lowest_score: int
    passing_score: int
    total_questions: int
