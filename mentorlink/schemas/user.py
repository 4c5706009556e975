import enum

from fastapi_users import schemas


class UserRole(str, enum.Enum):
    MENTOR = "mentor"
    MENTEE = "mentee"
    ADMIN = "admin"


class UserRead(schemas.BaseUser):
    username: str
    role: UserRole


class UserCreate(schemas.BaseUserCreate):
    username: str
    role: UserRole = UserRole.MENTEE


class UserUpdate(schemas.BaseUserUpdate):
    username: str | None = None
