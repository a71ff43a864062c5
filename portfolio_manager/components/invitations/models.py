from datetime import datetime
from uuid import UUID as UUIDType
from sqlalchemy import Uuid, String, ForeignKey, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portfolio_manager.core.models import BaseModel
from portfolio_manager.core.enums import InvitationStatus


class PortfolioInvitation(BaseModel):
    __tablename__ = "portfolio_invitations"

    portfolio_id: Mapped[UUIDType] = mapped_column(
        Uuid,
        ForeignKey("portfolios.pid"),
        nullable=False,
        # No individual index - covered by composite indices
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    token: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False
    )  # Unique constraint creates index automatically
    invited_by: Mapped[UUIDType] = mapped_column(Uuid, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=InvitationStatus.PENDING.value
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    portfolio = relationship(
        "Portfolio",
        foreign_keys=[portfolio_id],
    )

    __table_args__ = (
        Index(
            "ix_portfolio_invitations_portfolio_email_status",
            "portfolio_id",
            "email",
            "status",
        ),  # Check pending invites for email/portfolio
        Index(
            "ix_portfolio_invitations_expires_status", "expires_at", "status"
        ),  # Cleanup expired invites
    )
