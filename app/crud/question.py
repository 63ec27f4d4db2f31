from typing import Iterable, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.question import Question
from app.schemas.question import QuestionCreate, QuestionUpdate

class CRUDQuestion(CRUDBase[Question, QuestionCreate, QuestionUpdate]):

    def _active_query(self, db: Session, language: str, is_picture: Optional[bool] = None,
                      exclude_ids: Iterable[int] = ()):
        query = db.query(Question).filter(
            Question.language == language,
            Question.is_active == True
        )
        if is_picture is not None:
            query = query.filter(Question.is_picture == is_picture)
        exclude_ids = list(exclude_ids)
        if exclude_ids:
            query = query.filter(Question.id.notin_(exclude_ids))
        return query

    def count_active(self, db: Session, language: str, is_picture: Optional[bool] = None) -> int:
        return self._active_query(db, language, is_picture).count()

    def sample_random(self, db: Session, language: str, n: int, is_picture: Optional[bool] = None,
                      exclude_ids: Iterable[int] = ()) -> List[Question]:
        if n <= 0:
            return []
        return (
            self._active_query(db, language, is_picture, exclude_ids)
            .order_by(func.random())
            .limit(n)
            .all()
        )

    def increment_usage(self, db: Session, ids: Iterable[int]) -> int:
        ids = list(ids)
        if not ids:
            return 0
        return (
            db.query(Question)
            .filter(Question.id.in_(ids))
            .update({Question.usage_count: Question.usage_count + 1}, synchronize_session=False)
        )


question = CRUDQuestion(Question)
