from uuid import UUID

from pydantic import EmailStr

from src.core.schemas import CamelModel
from src.user.enums import UserRole


class UserProfileViewModel(CamelModel):
    id: UUID
    email: EmailStr
    name: str
    role: UserRole
    is_active: bool
