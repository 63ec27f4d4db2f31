from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from app.core.constants import RoleEnum

class User(BaseModel):
    id: int
    full_name: Optional[str] = None
    email: str
    role: str
    preferred_language: str
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_admin(self) -> bool:
        return self.role == RoleEnum.ADMIN.value

class UserContext(BaseModel):
    """The authenticated caller."""
    user: User
    is_admin: bool = False
    model_config = ConfigDict(from_attributes=True)
