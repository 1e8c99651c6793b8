from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {"email": "admin@example.com", "password": "s3cret"}
        },
    }


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int

    model_config = {
        "json_schema_extra": {
            "example": {
                "access_token": "<jwt>",
                "refresh_token": "<jwt>",
                "token_type": "bearer",
                "expires_in": 3600,
            }
        }
    }


class RefreshRequest(BaseModel):
    refresh_token: str


class IdentityOut(BaseModel):
    uid: str
    email: Optional[str] = None
    role: str


class UserCreate(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    role: Literal["admin", "viewer"] = "viewer"


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    uid: str
    email: str
    role: str
    created_at: datetime
