from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portfolio_manager.api.invitations.request_response import (
    AcceptInvitationResponse,
    CancelInvitationResponse,
    InvitationDetailsResponse,
    InvitationListResponse,
    InvitationResponse,
    InviteCollaboratorRequest,
)
from portfolio_manager.components.auth.dependencies import get_current_auth, require_portfolio
from portfolio_manager.components.invitations.manager import InvitationManager
from portfolio_manager.components.invitations.models import PortfolioInvitation
from portfolio_manager.components.portfolios.models import Portfolio
from portfolio_manager.components.users.crud import ProfilesCRUD
from portfolio_manager.core.exceptions import InvalidOrExpiredException
from portfolio_manager.core.security import AuthContext
from portfolio_manager.database.session import get_admin_db

router = APIRouter()


def _invitation_response(invitation: PortfolioInvitation) -> InvitationResponse:
    return InvitationResponse(
        id=invitation.pid,
        portfolio_id=invitation.portfolio_id,
        email=invitation.email,
        status=invitation.status,
        invited_by=invitation.invited_by,
        expires_at=invitation.expires_at,
        created_at=invitation.created_at,
    )


@router.post("", response_model=InvitationResponse)
async def create_invitation(
    invite_data: InviteCollaboratorRequest,
    auth: AuthContext = Depends(get_current_auth),
    portfolio: Portfolio = Depends(require_portfolio),
    admin_db: Session = Depends(get_admin_db),
):
    """Invite a collaborator by email (owner only)"""
    invitation = InvitationManager(admin_db).create_invitation(
        portfolio.pid, invite_data.email, auth.user_id
    )
    return _invitation_response(invitation)


@router.get("", response_model=InvitationListResponse)
async def list_invitations(
    auth: AuthContext = Depends(get_current_auth),
    portfolio: Portfolio = Depends(require_portfolio),
    admin_db: Session = Depends(get_admin_db),
):
    """List pending invitations (owner only)"""
    invitations = InvitationManager(admin_db).list_pending_invitations(
        portfolio.pid, auth.user_id
    )
    return InvitationListResponse(
        invitations=[_invitation_response(invite) for invite in invitations]
    )


@router.get("/{token}", response_model=InvitationDetailsResponse)
async def get_invitation(token: str, admin_db: Session = Depends(get_admin_db)):
    """Look up a usable invitation (public endpoint)"""
    invitation = InvitationManager(admin_db).get_invitation_by_token(token)
    if not invitation:
        raise InvalidOrExpiredException()

    inviter = ProfilesCRUD(admin_db).get_by_pid(invitation.invited_by)

    return InvitationDetailsResponse(
        portfolio_id=invitation.portfolio_id,
        email=invitation.email,
        invited_by_name=inviter.display_name if inviter else "A team member",
        expires_at=invitation.expires_at,
    )


@router.post("/{token}/accept", response_model=AcceptInvitationResponse)
async def accept_invitation(
    token: str,
    auth: AuthContext = Depends(get_current_auth),
    admin_db: Session = Depends(get_admin_db),
):
    """Join the inviting portfolio"""
    manager = InvitationManager(admin_db)
    manager.accept_invitation(token, auth.user_id)

    portfolio = manager.portfolios_crud.get_for_user(auth.user_id)
    return AcceptInvitationResponse(success=True, portfolio_id=portfolio.pid)


@router.delete("/{invitation_id}", response_model=CancelInvitationResponse)
async def cancel_invitation(
    invitation_id: UUID,
    auth: AuthContext = Depends(get_current_auth),
    portfolio: Portfolio = Depends(require_portfolio),
    admin_db: Session = Depends(get_admin_db),
):
    """Cancel a pending invitation (owner only)"""
    InvitationManager(admin_db).cancel_invitation(
        invitation_id, portfolio.pid, auth.user_id
    )
    return CancelInvitationResponse(message="Invitation cancelled successfully")
