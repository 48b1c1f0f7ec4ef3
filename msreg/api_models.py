from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    fullname: str = Field(..., pattern=r"^([a-zA-Z0-9 ]{4,30})$", description="Full name of user")
    email: EmailStr = Field(..., description="Email of user")
    password: str | None = Field(None, min_length=6, max_length=30, description="Password of user")
    roles: list[str] | None = Field(None, description="Roles of user")
    namespaces: list[str] | None = Field(None, description="Namespaces this user belongs to")
    external_id: str | None = Field(None, alias="externalId", description="External id of user")
    active: bool = Field(False, description="Status of user account")
    send_activation_mail: bool = Field(True, alias="sendActivationMail")
    token: str | None = Field(None, description="Email verification token")


class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    fullname: str = ""
    email: str = ""
    roles: list[str] = Field(default_factory=list)
    external_id: str | None = Field(None, alias="externalId")
    active: bool = False


class UserProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field("", alias="userId")
    fullname: str = Field("", alias="fullName")
    email: str = ""


class ResendVerificationPayload(BaseModel):
    email: EmailStr = Field(..., description="User email for verification")


class VerificationReset(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email: str = ""
    token: str
