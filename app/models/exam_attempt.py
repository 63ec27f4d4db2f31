from datetime import timedelta
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, Index
from sqlalchemy.orm import relationship
from app.core.clock import utcnow
from app.core.database import Base
from app.core.constants import ExamAttemptStatusEnum

class ExamAttempt(Base):
    __tablename__ = "exam_attempts"
    __table_args__ = (
        Index("ix_exam_attempts_user_status_created", "user_id", "status", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    language = Column(String(2), nullable=False)
    start_time = Column(DateTime, nullable=False, default=utcnow)
    end_time = Column(DateTime, nullable=True)
    time_limit_minutes = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default=ExamAttemptStatusEnum.IN_PROGRESS.value, index=True)
    total_questions = Column(Integer, nullable=False)
    picture_questions_count = Column(Integer, nullable=False, default=0)
    passing_score = Column(Integer, nullable=False)
    score = Column(Integer, nullable=True)
    passed = Column(Boolean, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, onupdate=utcnow)

    user = relationship("User", back_populates="exam_attempts")
    exam_answers = relationship(
        "ExamAnswer",
        back_populates="exam_attempt",
        cascade="all, delete-orphan",
        order_by="ExamAnswer.question_number",
    )

    @property
    def deadline(self):
        return self.start_time + timedelta(minutes=self.time_limit_minutes)

    @property
    def percentage(self):
        if self.score is None or not self.total_questions:
            return None
        return round(self.score / self.total_questions * 100, 2)

    @property
    def time_taken_minutes(self):
        if not self.end_time or not self.start_time:
            return None
        return round((self.end_time - self.start_time).total_seconds() / 60)

    def elapsed_minutes(self, now) -> float:
        return (now - self.start_time).total_seconds() / 60

    def has_expired(self, now) -> bool:
        return self.elapsed_minutes(now) > self.time_limit_minutes
