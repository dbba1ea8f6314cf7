# src/clinic_bff/schemas.py

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)


class RegisterRequest(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1)
    lastName: str = Field(min_length=1)
    phone: str = Field(min_length=6)
    ci: str = Field(min_length=1)
    password: str = Field(min_length=6)


class CreateUserRequest(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1)
    lastName: str = Field(min_length=1)
    phone: str = Field(min_length=6)
    roleId: str = Field(min_length=1)
    ci: str = Field(min_length=1)
    isActive: Optional[bool] = None
    firebaseUid: Optional[str] = Field(default=None, min_length=1)
    password: Optional[str] = Field(default=None, min_length=8)


class ChatRequest(BaseModel):
    # The rest of the chat payload (history, prompt ids...) is forwarded untouched.
    model_config = ConfigDict(extra="allow")

    message: str = Field(min_length=1)
