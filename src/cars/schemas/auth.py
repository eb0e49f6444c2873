from datetime import datetime

from pydantic import EmailStr

from src.cars.schemas.base import CamelModel


class RegisterRequest(CamelModel):
    """Records the email used for notifications for the bearer's identity key."""

    email: EmailStr


class UserRead(CamelModel):
    identity_key: str
    email: str | None
    created_at: datetime
