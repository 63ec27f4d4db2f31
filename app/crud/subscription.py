from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session, joinedload

from app.crud.base import CRUDBase, paginate
from app.models.subscription import SubscriptionPlan, UserSubscription
from pydantic import BaseModel


class CRUDSubscriptionPlan(CRUDBase[SubscriptionPlan, BaseModel, BaseModel]):
    def get_active_by_type(self, db: Session, *, plan_type: str) -> Optional[SubscriptionPlan]:
        return (
            db.query(self.model)
            .filter(self.model.type == plan_type, self.model.is_active == True)
            .first()
        )

    def get_active_plans(self, db: Session) -> List[SubscriptionPlan]:
        return (
            db.query(self.model)
            .filter(self.model.is_active == True)
            .order_by(self.model.exam_limit, self.model.duration_days)
            .all()
        )

subscription_plan = CRUDSubscriptionPlan(SubscriptionPlan)


class CRUDUserSubscription(CRUDBase[UserSubscription, BaseModel, BaseModel]):
    def _with_plan(self, db: Session):
        return db.query(self.model).options(joinedload(self.model.plan))

    def get_latest_active(self, db: Session, *, user_id: int) -> Optional[UserSubscription]:
        """Most recent row still flagged active, whether or not it has run out."""
        return (
            self._with_plan(db)
            .filter(self.model.user_id == user_id, self.model.is_active == True)
            .order_by(self.model.end_date.desc(), self.model.id.desc())
            .first()
        )

    def get_valid(self, db: Session, *, user_id: int, now: datetime) -> Optional[UserSubscription]:
        return (
            self._with_plan(db)
            .filter(
                self.model.user_id == user_id,
                self.model.is_active == True,
                self.model.end_date >= now
            )
            .order_by(self.model.end_date.desc(), self.model.id.desc())
            .first()
        )

    def count_valid(self, db: Session, *, user_id: int, now: datetime) -> int:
        return (
            db.query(self.model)
            .filter(
                self.model.user_id == user_id,
                self.model.is_active == True,
                self.model.end_date >= now
            )
            .count()
        )

    def deactivate(self, db: Session, *, db_obj: UserSubscription) -> UserSubscription:
        db_obj.is_active = False
        db.add(db_obj)
        db.flush()
        return db_obj

    def increment_attempts_used(self, db: Session, *, subscription_id: int, exam_limit: Optional[int] = None) -> bool:
        """Atomically bump the attempt counter in place.

        With a positive ``exam_limit`` the row only changes while
        ``exam_attempts_used < exam_limit``, so two racing session starts can
        never push the counter past the plan's limit.
        """
        query = db.query(self.model).filter(self.model.id == subscription_id)
        if exam_limit:
            query = query.filter(self.model.exam_attempts_used < exam_limit)
        updated = query.update(
            {self.model.exam_attempts_used: self.model.exam_attempts_used + 1},
            synchronize_session=False
        )
        return updated == 1

    def get_history_page(self, db: Session, *, user_id: int, page: int = 1, size: int = 10) -> dict:
        query = (
            self._with_plan(db)
            .filter(self.model.user_id == user_id)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
        )
        return paginate(query, page, size)

user_subscription = CRUDUserSubscription(UserSubscription)
