from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON, Index, event
from sqlalchemy.orm import relationship, validates
from app.core.clock import utcnow
from app.core.database import Base
from app.core.constants import ANSWER_LETTERS, OPTIONS_PER_QUESTION, LanguageEnum


def has_image(value) -> bool:
    return isinstance(value, str) and value.strip() != ""


def is_picture_question(image_url, options) -> bool:
    """A picture question carries an image on its body or on any option."""
    if has_image(image_url):
        return True
    return any(has_image(opt.get("image_url")) for opt in options or [])


class Question(Base):
    __tablename__ = "questions"
    __table_args__ = (
        Index("ix_questions_language_active_picture", "language", "is_active", "is_picture"),
    )

    id = Column(Integer, primary_key=True, index=True)
    language = Column(String(2), nullable=False, index=True)
    text = Column(String, nullable=False)
    image_url = Column(String, nullable=True)
    # [{"text", "image_url", "is_correct", "order"}], exactly four
    options = Column(JSON, nullable=False)
    explanation = Column(String, nullable=True)
    category = Column(String, nullable=True)
    difficulty = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    usage_count = Column(Integer, nullable=False, default=0)
    is_picture = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, onupdate=utcnow)

    exam_answers = relationship("ExamAnswer", back_populates="question")

    @validates("language")
    def validate_language(self, key, value):
        return LanguageEnum(value).value

    @validates("options")
    def validate_options(self, key, options):
        if not isinstance(options, list) or len(options) != OPTIONS_PER_QUESTION:
            raise ValueError(f"A question must have exactly {OPTIONS_PER_QUESTION} options.")
        normalized = []
        for index, opt in enumerate(options):
            text = opt.get("text")
            image_url = opt.get("image_url")
            if not (has_image(image_url) or (isinstance(text, str) and text.strip())):
                raise ValueError("Each option must have text or an image.")
            normalized.append({
                "text": text,
                "image_url": image_url,
                "is_correct": bool(opt.get("is_correct")),
                "order": index,
            })
        if sum(1 for opt in normalized if opt["is_correct"]) != 1:
            raise ValueError("A question must have exactly one correct option.")
        return normalized

    @property
    def correct_index(self) -> int:
        return next(i for i, opt in enumerate(self.options) if opt["is_correct"])

    @property
    def correct_letter(self) -> str:
        return ANSWER_LETTERS[self.correct_index]


@event.listens_for(Question, "before_insert")
@event.listens_for(Question, "before_update")
def _recompute_is_picture(mapper, connection, target):
    target.is_picture = is_picture_question(target.image_url, target.options)
