from __future__ import annotations

from pydantic import BaseModel, Field

from ..store.models import Interaction


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    phone: str | None = None


class VerifyRequest(BaseModel):
    email: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class MerchantUpdate(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str | None = None


class PublicRegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    surname: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    whatsapp: str | None = None


class PublicUserUpdate(BaseModel):
    name: str = Field(..., min_length=1)
    surname: str = Field(..., min_length=1)
    whatsapp: str | None = None
    favorites: list[str] | None = None
    history: list[Interaction] | None = None


class InteractionRequest(BaseModel):
    business_id: str = Field(..., min_length=1)
    type: str = Field(..., pattern="^(view|opinion)$")
