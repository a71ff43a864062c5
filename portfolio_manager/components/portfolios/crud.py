from typing import Optional, List
from uuid import UUID as UUIDType
from sqlalchemy.orm import Session
from sqlalchemy import and_

from portfolio_manager.components.portfolios.models import Portfolio, PortfolioMembership
from portfolio_manager.components.posts.models import Post
from portfolio_manager.core.base_crud import BaseCRUD
from portfolio_manager.core.enums import MembershipStatus
from portfolio_manager.core.utils import utcnow


class PortfoliosCRUD(BaseCRUD):
    """CRUD operations for Portfolios and their membership rows"""

    def __init__(self, db: Session):
        super().__init__(Portfolio, db)

    def get_owned_by(self, owner_id: UUIDType) -> Optional[Portfolio]:
        return self.db.query(Portfolio).filter(Portfolio.owner_id == owner_id).first()

    def get_membership(self, user_id: UUIDType) -> Optional[PortfolioMembership]:
        """The user's single membership row, whatever its status"""
        return (
            self.db.query(PortfolioMembership)
            .filter(PortfolioMembership.user_id == user_id)
            .first()
        )

    def get_accepted_membership(
        self, user_id: UUIDType, portfolio_id: Optional[UUIDType] = None
    ) -> Optional[PortfolioMembership]:
        query = self.db.query(PortfolioMembership).filter(
            and_(
                PortfolioMembership.user_id == user_id,
                PortfolioMembership.status == MembershipStatus.ACCEPTED.value,
            )
        )
        if portfolio_id is not None:
            query = query.filter(PortfolioMembership.portfolio_id == portfolio_id)
        return query.first()

    def get_for_user(self, user_id: UUIDType) -> Optional[Portfolio]:
        """Portfolio the user owns, else the one they collaborate in"""
        owned = self.get_owned_by(user_id)
        if owned:
            return owned

        membership = self.get_accepted_membership(user_id)
        if membership:
            return self.get_by_pid(membership.portfolio_id)

        return None

    def is_owner(self, user_id: UUIDType, portfolio_id: UUIDType) -> bool:
        return (
            self.db.query(Portfolio.id)
            .filter(and_(Portfolio.pid == portfolio_id, Portfolio.owner_id == user_id))
            .first()
            is not None
        )

    def is_member(self, user_id: UUIDType, portfolio_id: UUIDType) -> bool:
        if self.is_owner(user_id, portfolio_id):
            return True
        return self.get_accepted_membership(user_id, portfolio_id) is not None

    def list_accepted_memberships(
        self, portfolio_id: UUIDType
    ) -> List[PortfolioMembership]:
        return (
            self.db.query(PortfolioMembership)
            .filter(
                and_(
                    PortfolioMembership.portfolio_id == portfolio_id,
                    PortfolioMembership.status == MembershipStatus.ACCEPTED.value,
                )
            )
            .order_by(
                PortfolioMembership.invited_at.desc(), PortfolioMembership.id.desc()
            )
            .all()
        )

    def list_collaborator_ids(self, portfolio: Portfolio) -> List[UUIDType]:
        """Accepted members other than the owner"""
        return [
            membership.user_id
            for membership in self.list_accepted_memberships(portfolio.pid)
            if membership.user_id != portfolio.owner_id
        ]

    def create_membership(
        self, portfolio_id: UUIDType, user_id: UUIDType, invited_by: UUIDType
    ) -> PortfolioMembership:
        """Insert an accepted membership row; raises IntegrityError if the user has one"""
        membership = PortfolioMembership(
            portfolio_id=portfolio_id,
            user_id=user_id,
            invited_by=invited_by,
            status=MembershipStatus.ACCEPTED.value,
            accepted_at=utcnow(),
        )
        self.db.add(membership)
        self.db.commit()
        self.db.refresh(membership)
        return membership

    def delete_membership(self, portfolio_id: UUIDType, user_id: UUIDType) -> int:
        deleted = (
            self.db.query(PortfolioMembership)
            .filter(
                and_(
                    PortfolioMembership.portfolio_id == portfolio_id,
                    PortfolioMembership.user_id == user_id,
                )
            )
            .delete()
        )
        self.db.commit()
        return deleted

    def reparent_posts(
        self, user_id: UUIDType, portfolio_id: Optional[UUIDType]
    ) -> int:
        """Point every post the user created at a portfolio (or detach them)"""
        updated = (
            self.db.query(Post)
            .filter(Post.user_id == user_id)
            .update({Post.portfolio_id: portfolio_id})
        )
        self.db.commit()
        return updated
