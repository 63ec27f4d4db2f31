from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from app.core.clock import utcnow
from app.core.database import Base

class ExamAnswer(Base):
    __tablename__ = "exam_answers"
    __table_args__ = (
        UniqueConstraint("exam_attempt_id", "question_id", name="uq_exam_answers_attempt_question"),
    )

    id = Column(Integer, primary_key=True, index=True)
    exam_attempt_id = Column(Integer, ForeignKey("exam_attempts.id"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False, index=True)
    question_number = Column(Integer, nullable=False)
    option_order = Column(JSON, nullable=False) # original option indices, in presented order
    correct_answer = Column(String(1), nullable=False)
    user_answer = Column(String(1), nullable=True)
    is_correct = Column(Boolean, nullable=True)
    answered_at = Column(DateTime, nullable=True)
    time_to_answer = Column(Integer, nullable=True) # seconds since the attempt started
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, onupdate=utcnow)

    exam_attempt = relationship("ExamAttempt", back_populates="exam_answers")
    question = relationship("Question", back_populates="exam_answers")

    @property
    def is_answered(self) -> bool:
        return self.user_answer is not None
