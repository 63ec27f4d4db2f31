from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from app.core.constants import LanguageEnum

class QuestionOption(BaseModel):
    text: Optional[str] = None
    image_url: Optional[str] = None
    is_correct: bool = False

class QuestionBase(BaseModel):
    language: LanguageEnum
    text: str
    image_url: Optional[str] = None
    options: List[QuestionOption] = Field(..., min_length=4, max_length=4)
    explanation: Optional[str] = None
    category: Optional[str] = None
    difficulty: Optional[str] = None
    is_active: bool = True

    model_config = ConfigDict(use_enum_values=True)

class QuestionCreate(QuestionBase):
    pass

class QuestionUpdate(QuestionBase):
    language: Optional[LanguageEnum] = None
    text: Optional[str] = None
    options: Optional[List[QuestionOption]] = Field(None, min_length=4, max_length=4)
    is_active: Optional[bool] = None

class Question(QuestionBase):
    id: int
    is_picture: bool
    usage_count: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class PresentedOption(BaseModel):
    """One option as shown to the candidate, labelled with its answer letter."""
    letter: str
    text: Optional[str] = None
    image_url: Optional[str] = None

class PresentedQuestion(BaseModel):
    """A question inside an attempt. Never carries the correct answer."""
    question_id: int
    question_number: int
    text: str
    image_url: Optional[str] = None
    is_picture: bool
    options: List[PresentedOption]
    user_answer: Optional[str] = None
