"""FastAPI dependencies for tenant resolution."""

from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..errors import UnauthorizedError
from ..security.tokens import TokenClaims
from ..services import auth_svc
from .context import TenantContext


def _bearer_token(request: Request) -> str:
    header = request.headers.get("authorization", "").strip()
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthorizedError("Bearer token required")
    return token.strip()


async def get_token_claims(request: Request) -> TokenClaims:
    """Verified claims of the bearer token. 401 when missing or invalid."""
    return auth_svc.decode_token(_bearer_token(request))


async def get_tenant_context(
    claims: TokenClaims = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db),
) -> TenantContext:
    """Resolve the caller's active membership. 403 when there is none."""
    return await auth_svc.resolve_context(db, claims)
