from datetime import datetime
from typing import Optional
from uuid import UUID as UUIDType
from sqlalchemy import Uuid, String, ForeignKey, DateTime, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portfolio_manager.core.models import BaseModel
from portfolio_manager.core.enums import MembershipStatus


class Portfolio(BaseModel):
    __tablename__ = "portfolios"

    owner_id: Mapped[UUIDType] = mapped_column(
        Uuid, nullable=False, unique=True, index=True
    )  # One portfolio per owner

    memberships: Mapped[list["PortfolioMembership"]] = relationship(
        "PortfolioMembership",
        foreign_keys="PortfolioMembership.portfolio_id",
        back_populates="portfolio",
    )


class PortfolioMembership(BaseModel):
    __tablename__ = "portfolio_collaborators"

    portfolio_id: Mapped[UUIDType] = mapped_column(
        Uuid, ForeignKey("portfolios.pid"), nullable=False
    )
    user_id: Mapped[UUIDType] = mapped_column(
        Uuid, nullable=False, unique=True, index=True
    )  # A user belongs to at most one portfolio
    invited_by: Mapped[UUIDType] = mapped_column(Uuid, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=MembershipStatus.PENDING.value
    )
    invited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    accepted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    portfolio = relationship(
        "Portfolio",
        foreign_keys=[portfolio_id],
        back_populates="memberships",
    )

    __table_args__ = (
        Index(
            "ix_portfolio_collaborators_portfolio_status", "portfolio_id", "status"
        ),  # List accepted collaborators
    )
