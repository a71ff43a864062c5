from typing import Optional
from uuid import UUID as UUIDType
from sqlalchemy import Uuid, String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_manager.core.models import BaseModel


class Profile(BaseModel):
    """Account profile owned by the auth system; `pid` is the user id."""

    __tablename__ = "profiles"

    email: Mapped[str] = mapped_column(
        String(255), nullable=False, index=True, unique=True
    )  # Stored lower-cased
    first_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    portfolio_id: Mapped[Optional[UUIDType]] = mapped_column(
        Uuid, ForeignKey("portfolios.pid"), nullable=True, index=True
    )

    @property
    def display_name(self) -> str:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.email or "A team member"
