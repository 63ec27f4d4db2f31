from typing import Optional
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.user import User
from pydantic import BaseModel


class CRUDUser(CRUDBase[User, BaseModel, BaseModel]):
    def lock(self, db: Session, *, user_id: int) -> Optional[User]:
        """Row-lock the user until commit; serializes per-user writes on backends that support it."""
        return db.query(self.model).filter(self.model.id == user_id).with_for_update().first()

user = CRUDUser(User)
