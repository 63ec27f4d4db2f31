from pydantic import BaseModel, ConfigDict
from typing import Optional, List
from datetime import datetime

class ExamAnswerBase(BaseModel):
    exam_attempt_id: int
    question_id: int
    question_number: int
    option_order: List[int]
    correct_answer: str

class ExamAnswerCreate(ExamAnswerBase):
    pass

class ExamAnswerUpdate(BaseModel):
    user_answer: Optional[str] = None
    is_correct: Optional[bool] = None
    answered_at: Optional[datetime] = None
    time_to_answer: Optional[int] = None

class ExamAnswer(BaseModel):
    id: int
    exam_attempt_id: int
    question_id: int
    question_number: int
    user_answer: Optional[str] = None
    answered_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
