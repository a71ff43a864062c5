from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel

from portfolio_manager.core.enums import Tier


class PortfolioResponse(BaseModel):
    id: UUID
    owner_id: UUID
    is_owner: bool
    created_at: datetime
    updated_at: datetime


class CheckTierResponse(BaseModel):
    price_id: str
    tier: Tier
    display_name: str


class CollaboratorResponse(BaseModel):
    user_id: UUID
    portfolio_id: UUID
    invited_by: UUID
    status: str
    is_owner: bool
    invited_at: datetime
    accepted_at: Optional[datetime] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class CollaboratorListResponse(BaseModel):
    collaborators: list[CollaboratorResponse]


class SeatInfoResponse(BaseModel):
    base_seats: int
    additional_seats: int
    total_seats: int
    seats_used: int
    seats_remaining: int
    can_invite_more: bool


class SyncTiersRequest(BaseModel):
    tier: Tier


class SyncTiersResponse(BaseModel):
    tier: Tier
    subscriptions_synced: int


class SuccessResponse(BaseModel):
    success: bool = True
