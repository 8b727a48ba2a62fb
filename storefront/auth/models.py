from typing import Optional
from pydantic import BaseModel, Field


class SignupIn(BaseModel):
    email: str = Field(..., examples=["user@example.com"])
    password: str = Field(..., examples=["StrongPassword1!"])
    name: str = Field(..., min_length=1, max_length=128, examples=["Full Name"])


class SignIn(BaseModel):
    email: str = Field(...)
    password: str = Field(...)


class ForgotPasswordIn(BaseModel):
    email: str


class ResetPasswordIn(BaseModel):
    token: str
    new_password: str


class CurrentUser(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
