"""Wire models for the application backend login endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

Profile = dict[str, Any]


class CheckPhoneRequest(BaseModel):
    """Payload for the backend phone eligibility check."""

    phone: str


class CheckPhoneResponse(BaseModel):
    """Backend answer for a phone eligibility check."""

    success: bool
    message: str | None = None
    data: Profile | None = None


class VerifyOtpRequest(BaseModel):
    """Payload exchanging a provider identity token for a session."""

    model_config = ConfigDict(populate_by_name=True)

    phone: str
    id_token: str = Field(alias="idToken")


class VerifyOtpData(BaseModel):
    """Session token and profile issued by the backend."""

    token: str = Field(min_length=1)
    farmer: Profile


class VerifyOtpResponse(BaseModel):
    """Backend answer for an identity token exchange."""

    success: bool
    message: str | None = None
    data: VerifyOtpData | None = None
