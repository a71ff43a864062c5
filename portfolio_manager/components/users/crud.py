from typing import Optional, List
from uuid import UUID as UUIDType
from sqlalchemy.orm import Session

from portfolio_manager.components.users.models import Profile
from portfolio_manager.core.base_crud import BaseCRUD
from portfolio_manager.core.utils import normalize_email


class ProfilesCRUD(BaseCRUD):
    """CRUD operations for Profiles"""

    def __init__(self, db: Session):
        super().__init__(Profile, db)

    def get_by_email(self, email: str) -> Optional[Profile]:
        """Get profile by email (emails stored normalized)"""
        return (
            self.db.query(Profile)
            .filter(Profile.email == normalize_email(email))
            .first()
        )

    def get_many(self, user_ids: List[UUIDType]) -> List[Profile]:
        if not user_ids:
            return []
        return self.db.query(Profile).filter(Profile.pid.in_(user_ids)).all()

    def set_portfolio(
        self, user_id: UUIDType, portfolio_id: Optional[UUIDType]
    ) -> int:
        """Re-point a user's profile at a portfolio (or detach it with None)"""
        updated = (
            self.db.query(Profile)
            .filter(Profile.pid == user_id)
            .update({Profile.portfolio_id: portfolio_id})
        )
        self.db.commit()
        return updated
