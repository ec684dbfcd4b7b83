from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from digital_forms.database import get_db
from digital_forms.core.access import Principal, require_admin
from digital_forms.core.exceptions import InvalidCredentialsException
from digital_forms.core.logging_utils import get_request_id
from digital_forms.services.activity_service import RequestContext
from digital_forms.services.auth_service import AuthService


# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> Principal:
    """
    Resolve the bearer token to a Principal.
    Dependency for endpoints requiring authentication.

    Raises:
        InvalidCredentialsException: 401 if the header is missing, or the token is
        invalid, expired, or belongs to a missing or deactivated user
    """
    if not credentials:
        raise InvalidCredentialsException(detail="Not authenticated")
    principal = await AuthService.validate(db, credentials.credentials)
    if principal is None:
        raise InvalidCredentialsException(detail="Invalid or expired token")
    return principal


async def get_current_principal_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> Optional[Principal]:
    """
    Resolve the bearer token if present.
    Returns None if not authenticated or the token is invalid.
    """
    if not credentials:
        return None
    return await AuthService.validate(db, credentials.credentials)


async def get_admin_principal(
    principal: Principal = Depends(get_current_principal)
) -> Principal:
    """
    Raises:
        ForbiddenException: 403 unless the caller is an admin
    """
    require_admin(principal)
    return principal


def get_request_context(request: Request) -> RequestContext:
    """Client IP, user agent and request ID for activity entries."""
    return RequestContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        request_id=getattr(request.state, "request_id", None) or get_request_id()
    )
