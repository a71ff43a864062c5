from typing import List, Optional, Set
from uuid import UUID as UUIDType
from sqlalchemy import or_
from sqlalchemy.orm import Session

from portfolio_manager.components.posts.models import OrganizationGrant, Post
from portfolio_manager.core.base_crud import BaseCRUD


class PostsCRUD(BaseCRUD):
    """Read access to posts; publications load with each post"""

    def __init__(self, db: Session):
        super().__init__(Post, db)

    def list_by_portfolio(self, portfolio_id: UUIDType) -> List[Post]:
        return (
            self.db.query(Post)
            .filter(Post.portfolio_id == portfolio_id)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .all()
        )

    def list_feed_candidates(
        self, user_id: UUIDType, portfolio_id: Optional[UUIDType]
    ) -> List[Post]:
        """The portfolio's posts plus every post the user created, tagged or not"""
        condition = Post.user_id == user_id
        if portfolio_id is not None:
            condition = or_(condition, Post.portfolio_id == portfolio_id)
        return (
            self.db.query(Post)
            .filter(condition)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .all()
        )


class OrganizationGrantsCRUD(BaseCRUD):
    def __init__(self, db: Session):
        super().__init__(OrganizationGrant, db)

    def get_organization_ids(self, user_id: UUIDType) -> Set[str]:
        """Organisations the user has connected through LinkedIn"""
        rows = (
            self.db.query(OrganizationGrant.organization_id)
            .filter(OrganizationGrant.user_id == user_id)
            .all()
        )
        return {row.organization_id for row in rows}
