"""Registration, login and organization switching."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.auth import LoginRequest, RegisterRequest, SwitchOrganizationRequest, TokenResponse
from ..schemas.organization import InviteAccept
from ..security.tokens import TokenClaims
from ..services import auth_svc, member_svc, organization_svc
from ..tenant.deps import get_token_claims

router = APIRouter(prefix="/auth")


def _token_response(user_id, organization_id) -> TokenResponse:
    return TokenResponse(
        access_token=auth_svc.issue_token(user_id, organization_id),
        user_id=user_id,
        organization_id=organization_id,
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    user = await auth_svc.register_user(
        db, data.email, data.name, data.password, organization_name=data.organization_name
    )
    return _token_response(user.id, user.active_organization_id)


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await auth_svc.authenticate(db, data.email, data.password)
    return _token_response(user.id, user.active_organization_id)


@router.post("/switch-organization", response_model=TokenResponse)
async def switch_organization(
    data: SwitchOrganizationRequest,
    claims: TokenClaims = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db),
):
    org = await organization_svc.switch_organization(db, claims.user_id, data.organization_id)
    return _token_response(claims.user_id, org.id)


@router.post("/invites/accept", response_model=TokenResponse)
async def accept_invite(data: InviteAccept, db: AsyncSession = Depends(get_db)):
    member = await member_svc.accept_invite(db, data.token, name=data.name, password=data.password)
    return _token_response(member.user_id, member.organization_id)
