import secrets
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import and_

from portfolio_manager.components.invitations.models import PortfolioInvitation
from portfolio_manager.core.base_crud import BaseCRUD
from portfolio_manager.core.config import INVITATION_EXPIRY_DAYS
from portfolio_manager.core.enums import InvitationStatus
from portfolio_manager.core.utils import normalize_email, utcnow


class InvitationsCRUD(BaseCRUD):
    def __init__(self, db: Session):
        super().__init__(PortfolioInvitation, db)

    def generate_invite_token(self) -> str:
        """Generate a secure random token for invitations"""
        # 32 random bytes, hex encoded (64 characters)
        return secrets.token_hex(32)

    def create_invitation(
        self,
        portfolio_id: UUID,
        email: str,
        invited_by: UUID,
        expires_in_days: int = INVITATION_EXPIRY_DAYS,
    ) -> PortfolioInvitation:
        """Create a new pending invitation"""
        token = self.generate_invite_token()

        # Ensure token is unique
        while self.get_by_token(token):
            token = self.generate_invite_token()

        invitation = PortfolioInvitation(
            portfolio_id=portfolio_id,
            email=normalize_email(email),  # Normalize email at storage
            token=token,
            invited_by=invited_by,
            status=InvitationStatus.PENDING.value,
            expires_at=utcnow() + timedelta(days=expires_in_days),
        )

        self.db.add(invitation)
        self.db.commit()
        self.db.refresh(invitation)
        return invitation

    def get_by_token(self, token: str) -> Optional[PortfolioInvitation]:
        return (
            self.db.query(PortfolioInvitation)
            .filter(PortfolioInvitation.token == token)
            .first()
        )

    def get_pending_by_email(
        self, portfolio_id: UUID, email: str, now: Optional[datetime] = None
    ) -> Optional[PortfolioInvitation]:
        """Pending, not yet expired invitation for an email in a portfolio"""
        return (
            self.db.query(PortfolioInvitation)
            .filter(
                and_(
                    PortfolioInvitation.portfolio_id == portfolio_id,
                    PortfolioInvitation.email == normalize_email(email),
                    PortfolioInvitation.status == InvitationStatus.PENDING.value,
                    PortfolioInvitation.expires_at > (now or utcnow()),
                )
            )
            .first()
        )

    def list_pending(self, portfolio_id: UUID) -> List[PortfolioInvitation]:
        return (
            self.db.query(PortfolioInvitation)
            .filter(
                and_(
                    PortfolioInvitation.portfolio_id == portfolio_id,
                    PortfolioInvitation.status == InvitationStatus.PENDING.value,
                    PortfolioInvitation.expires_at > utcnow(),
                )
            )
            .order_by(
                PortfolioInvitation.created_at.desc(), PortfolioInvitation.id.desc()
            )
            .all()
        )

    def list_pending_for_emails(
        self, portfolio_id: UUID, emails: List[str]
    ) -> List[PortfolioInvitation]:
        if not emails:
            return []
        return (
            self.db.query(PortfolioInvitation)
            .filter(
                and_(
                    PortfolioInvitation.portfolio_id == portfolio_id,
                    PortfolioInvitation.email.in_(
                        [normalize_email(email) for email in emails]
                    ),
                    PortfolioInvitation.status == InvitationStatus.PENDING.value,
                )
            )
            .all()
        )

    def set_status(
        self, invitation: PortfolioInvitation, status: InvitationStatus
    ) -> PortfolioInvitation:
        return self.update(invitation, {"status": status.value})

    def cleanup_expired_invitations(self, portfolio_id: Optional[UUID] = None) -> int:
        """Mark pending invitations past their expiry as expired"""
        query = self.db.query(PortfolioInvitation).filter(
            and_(
                PortfolioInvitation.expires_at < utcnow(),
                PortfolioInvitation.status == InvitationStatus.PENDING.value,
            )
        )

        if portfolio_id:
            query = query.filter(PortfolioInvitation.portfolio_id == portfolio_id)

        expired_invitations = query.all()

        for invitation in expired_invitations:
            invitation.status = InvitationStatus.EXPIRED.value

        self.db.commit()
        return len(expired_invitations)
