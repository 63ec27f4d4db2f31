from datetime import datetime
from typing import List, Optional
from sqlalchemy import case, func, select
from sqlalchemy.orm import Session, selectinload

from app.core.constants import ExamAttemptStatusEnum
from app.crud.base import CRUDBase, paginate
from app.models.exam_answer import ExamAnswer
from app.models.exam_attempt import ExamAttempt
from app.schemas.exam_attempt import ExamAttemptCreate, ExamAttemptUpdate

class CRUDExamAttempt(CRUDBase[ExamAttempt, ExamAttemptCreate, ExamAttemptUpdate]):

    def _query_with_relationships(self, db: Session):
        return db.query(ExamAttempt).options(
            selectinload(ExamAttempt.exam_answers).selectinload(ExamAnswer.question)
        )

    def get_owned(self, db: Session, attempt_id: int, user_id: int,
                  status: Optional[ExamAttemptStatusEnum] = None) -> Optional[ExamAttempt]:
        query = (
            self._query_with_relationships(db)
            .filter(ExamAttempt.id == attempt_id)
            .filter(ExamAttempt.user_id == user_id)
        )
        if status is not None:
            query = query.filter(ExamAttempt.status == status.value)
        return query.first()

    def get_in_progress(self, db: Session, user_id: int) -> Optional[ExamAttempt]:
        return (
            db.query(ExamAttempt)
            .filter(ExamAttempt.user_id == user_id)
            .filter(ExamAttempt.status == ExamAttemptStatusEnum.IN_PROGRESS.value)
            .order_by(ExamAttempt.start_time.desc())
            .first()
        )

    def get_recent_completed_ids(self, db: Session, user_id: int, limit: int) -> List[int]:
        if limit <= 0:
            return []
        rows = (
            db.query(ExamAttempt.id)
            .filter(
                ExamAttempt.user_id == user_id,
                ExamAttempt.status == ExamAttemptStatusEnum.COMPLETED.value
            )
            .order_by(ExamAttempt.created_at.desc(), ExamAttempt.id.desc())
            .limit(limit)
            .all()
        )
        return [row[0] for row in rows]

    def get_completed_page(self, db: Session, user_id: int, page: int = 1, size: int = 10) -> dict:
        query = (
            db.query(ExamAttempt)
            .filter(
                ExamAttempt.user_id == user_id,
                ExamAttempt.status == ExamAttemptStatusEnum.COMPLETED.value
            )
            .order_by(ExamAttempt.created_at.desc(), ExamAttempt.id.desc())
        )
        return paginate(query, page, size)

    def complete_if_in_progress(self, db: Session, attempt_id: int, user_id: int, end_time: datetime) -> bool:
        """Grade and close the attempt in one conditional UPDATE.

        Score and verdict are computed from the answer rows inside the same
        statement, and the row only changes while it is still in progress, so
        concurrent submit calls resolve to exactly one winner.
        """
        correct_count = (
            select(func.count(ExamAnswer.id))
            .where(ExamAnswer.exam_attempt_id == attempt_id)
            .where(ExamAnswer.is_correct == True)
            .scalar_subquery()
        )
        updated = (
            db.query(ExamAttempt)
            .filter(
                ExamAttempt.id == attempt_id,
                ExamAttempt.user_id == user_id,
                ExamAttempt.status == ExamAttemptStatusEnum.IN_PROGRESS.value
            )
            .update(
                {
                    ExamAttempt.score: correct_count,
                    ExamAttempt.passed: case((correct_count >= ExamAttempt.passing_score, True), else_=False),
                    ExamAttempt.end_time: end_time,
                    ExamAttempt.status: ExamAttemptStatusEnum.COMPLETED.value,
                    ExamAttempt.updated_at: end_time,
                },
                synchronize_session=False
            )
        )
        return updated == 1

    def get_user_stats(self, db: Session, user_id: int) -> dict:
        row = (
            db.query(
                func.count(ExamAttempt.id),
                func.sum(case((ExamAttempt.passed == True, 1), else_=0)),
                func.avg(ExamAttempt.score),
                func.max(ExamAttempt.score),
                func.min(ExamAttempt.score),
            )
            .filter(
                ExamAttempt.user_id == user_id,
                ExamAttempt.status == ExamAttemptStatusEnum.COMPLETED.value
            )
            .one()
        )
        total, passed, average, highest, lowest = row
        return {
            "total_exams": total or 0,
            "passed_exams": int(passed or 0),
            "average_score": round(float(average), 2) if average is not None else 0.0,
            "highest_score": highest or 0,
            "lowest_score": lowest or 0,
        }


exam_attempt = CRUDExamAttempt(ExamAttempt)
