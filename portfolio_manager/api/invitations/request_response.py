from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, EmailStr

from portfolio_manager.core.enums import InvitationStatus


class InviteCollaboratorRequest(BaseModel):
    email: EmailStr


class InvitationResponse(BaseModel):
    id: UUID
    portfolio_id: UUID
    email: str
    status: InvitationStatus
    invited_by: UUID
    expires_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class InvitationListResponse(BaseModel):
    invitations: list[InvitationResponse]


class InvitationDetailsResponse(BaseModel):
    portfolio_id: UUID
    email: str
    invited_by_name: str
    expires_at: datetime


class AcceptInvitationResponse(BaseModel):
    success: bool
    portfolio_id: UUID


class CancelInvitationResponse(BaseModel):
    message: str
