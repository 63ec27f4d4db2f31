from datetime import datetime
from typing import Iterable, List, Optional, Set
from sqlalchemy import exists
from sqlalchemy.orm import Session

from app.core.constants import ExamAttemptStatusEnum
from app.crud.base import CRUDBase
from app.models.exam_answer import ExamAnswer
from app.models.exam_attempt import ExamAttempt
from app.schemas.exam_answer import ExamAnswerCreate, ExamAnswerUpdate

class CRUDExamAnswer(CRUDBase[ExamAnswer, ExamAnswerCreate, ExamAnswerUpdate]):

    def get_by_attempt_and_question(self, db: Session, exam_attempt_id: int,
                                    question_id: int) -> Optional[ExamAnswer]:
        return (
            db.query(ExamAnswer)
            .filter(ExamAnswer.exam_attempt_id == exam_attempt_id)
            .filter(ExamAnswer.question_id == question_id)
            .first()
        )

    def get_all_by_attempt(self, db: Session, exam_attempt_id: int) -> List[ExamAnswer]:
        return (
            db.query(ExamAnswer)
            .filter(ExamAnswer.exam_attempt_id == exam_attempt_id)
            .order_by(ExamAnswer.question_number)
            .all()
        )

    def get_question_ids_for_attempts(self, db: Session, attempt_ids: Iterable[int]) -> Set[int]:
        attempt_ids = list(attempt_ids)
        if not attempt_ids:
            return set()
        rows = (
            db.query(ExamAnswer.question_id)
            .filter(ExamAnswer.exam_attempt_id.in_(attempt_ids))
            .distinct()
            .all()
        )
        return {row[0] for row in rows}

    def create_bulk(self, db: Session, answers: List[ExamAnswer]) -> List[ExamAnswer]:
        db.add_all(answers)
        db.flush()
        return answers

    def record_if_in_progress(self, db: Session, answer_id: int, exam_attempt_id: int, letter: str,
                              is_correct: bool, answered_at: datetime, time_to_answer: Optional[int]) -> bool:
        """Store the user's letter only while the owning attempt is still in progress."""
        attempt_open = exists().where(
            ExamAttempt.id == exam_attempt_id,
            ExamAttempt.status == ExamAttemptStatusEnum.IN_PROGRESS.value
        )
        updated = (
            db.query(ExamAnswer)
            .filter(ExamAnswer.id == answer_id, attempt_open)
            .update(
                {
                    ExamAnswer.user_answer: letter,
                    ExamAnswer.is_correct: is_correct,
                    ExamAnswer.answered_at: answered_at,
                    ExamAnswer.time_to_answer: time_to_answer,
                    ExamAnswer.updated_at: answered_at,
                },
                synchronize_session=False
            )
        )
        return updated == 1


exam_answer = CRUDExamAnswer(ExamAnswer)
