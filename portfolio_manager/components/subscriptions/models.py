from datetime import datetime
from typing import Optional
from uuid import UUID as UUIDType
from sqlalchemy import Uuid, String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_manager.core.models import BaseModel


class Subscription(BaseModel):
    __tablename__ = "subscriptions"

    user_id: Mapped[UUIDType] = mapped_column(Uuid, nullable=False, index=True)
    provider: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    price_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    # NULL on legacy rows
    membership_type: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    external_customer_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    external_subscription_id: Mapped[Optional[str]] = mapped_column(
        String, nullable=True
    )
    current_period_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index(
            "ix_subscriptions_user_status_type", "user_id", "status", "membership_type"
        ),  # Primary plan lookup
    )
