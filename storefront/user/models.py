from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class UserUpdateIn(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=128)
    email: Optional[str] = None


class UserOut(BaseModel):
    id: int
    email: str
    name: str
    role: str
    profile_image_url: Optional[str] = None
    created_at: Optional[datetime] = None


def public_user(user) -> dict:
    """Serializable view of a Users row, never includes the password hash."""
    return UserOut(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        profile_image_url=user.profile_image_url,
        created_at=user.created_at,
    ).model_dump(mode="json")
