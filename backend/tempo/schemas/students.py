"""Student roster and invite schemas."""

from pydantic import BaseModel, EmailStr, Field


class InviteStudentRequest(BaseModel):
    email: EmailStr
    name: str = Field(min_length=2)


class InvitedStudent(BaseModel):
    id: str
    email: str
    name: str


class InviteResponse(BaseModel):
    student: InvitedStudent
    invite_url: str
    invite_token: str
    expires_at: str


class InviteInfoResponse(BaseModel):
    name: str
    email: str


class AcceptInviteRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=8)


class RosterEntry(BaseModel):
    id: str
    email: str
    name: str
    created_at: str
    invite_pending: bool
    session_count: int


class RosterResponse(BaseModel):
    students: list[RosterEntry]
