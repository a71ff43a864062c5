from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel


class PostResponse(BaseModel):
    id: int
    pid: UUID
    user_id: UUID
    portfolio_id: Optional[UUID] = None
    publish_target: Optional[str] = None
    content: Optional[str] = None
    organization_ids: list[str]
    is_own: bool
    created_at: datetime


class PostListResponse(BaseModel):
    posts: list[PostResponse]


class PostAccessResponse(BaseModel):
    post_id: int
    can_access: bool


class AccessibleOrganizationsResponse(BaseModel):
    organization_ids: list[str]
