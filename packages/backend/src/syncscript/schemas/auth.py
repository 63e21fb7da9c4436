"""Pydantic schemas for registration and login.

Every field is optional at the schema level so that missing fields get
the API's own 400 messages instead of a generic validation error.
"""

from typing import Optional

from pydantic import BaseModel

from syncscript.schemas.common import CamelModel

MIN_PASSWORD_LENGTH = 6


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserRead(CamelModel):
    id: int
    email: str
    name: str
