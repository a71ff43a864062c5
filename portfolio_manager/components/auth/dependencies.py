from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from portfolio_manager.components.portfolios.manager import PortfolioManager
from portfolio_manager.components.portfolios.models import Portfolio
from portfolio_manager.core.security import verify_token, create_auth_context, AuthContext
from portfolio_manager.database.session import get_admin_db

# Extracts Bearer tokens
security = HTTPBearer()


async def get_current_auth(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AuthContext:
    """Extract and validate auth context from JWT token"""
    payload = verify_token(credentials.credentials)
    return create_auth_context(payload)


async def require_portfolio(
    auth: AuthContext = Depends(get_current_auth),
    admin_db: Session = Depends(get_admin_db),
) -> Portfolio:
    """The caller's portfolio, as owner or collaborator"""
    portfolio = PortfolioManager(admin_db).get_user_portfolio(auth.user_id)
    if not portfolio:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="You are not a member of any portfolio",
        )
    return portfolio
