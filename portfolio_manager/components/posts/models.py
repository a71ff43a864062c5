from typing import Optional
from uuid import UUID as UUIDType
from sqlalchemy import Uuid, String, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portfolio_manager.core.models import BaseModel


class Post(BaseModel):
    __tablename__ = "posts"

    user_id: Mapped[UUIDType] = mapped_column(Uuid, nullable=False, index=True)
    portfolio_id: Mapped[Optional[UUIDType]] = mapped_column(
        Uuid, ForeignKey("portfolios.pid"), nullable=True, index=True
    )
    # "personal", NULL, or a LinkedIn organisation id
    publish_target: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    publications: Mapped[list["Publication"]] = relationship(
        "Publication",
        foreign_keys="Publication.post_id",
        back_populates="post",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class Publication(BaseModel):
    """A post as published to LinkedIn, either personally or for an organisation"""

    __tablename__ = "linkedin_posts"

    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id"), nullable=False, index=True
    )
    organization_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    post = relationship(
        "Post",
        foreign_keys=[post_id],
        back_populates="publications",
    )


class OrganizationGrant(BaseModel):
    """Written by the LinkedIn OAuth integration; read-only here"""

    __tablename__ = "linkedin_organizations"

    user_id: Mapped[UUIDType] = mapped_column(Uuid, nullable=False, index=True)
    organization_id: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "user_id", "organization_id", name="uq_linkedin_org_user_org"
        ),
    )
