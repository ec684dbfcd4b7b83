from typing import Optional
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from digital_forms.database import get_db
from digital_forms.api.deps import (
    get_current_principal,
    get_current_principal_optional,
    get_request_context,
)
from digital_forms.core.access import Principal
from digital_forms.core.exceptions import NotFoundException
from digital_forms.middleware.rate_limit import rate_limit_auth
from digital_forms.schemas.auth import (
    LoginRequest,
    LoginResponse,
    PrincipalResponse,
    ValidateResponse,
    ChangePasswordRequest,
    MessageResponse,
)
from digital_forms.schemas.user import UserResponse
from digital_forms.services.activity_service import RequestContext
from digital_forms.services.auth_service import AuthService
from digital_forms.services.user_service import UserService

router = APIRouter()


def _principal_response(principal: Principal) -> PrincipalResponse:
    return PrincipalResponse(
        user_id=principal.user_id,
        username=principal.username,
        role=principal.role.value,
        token_expires_at=principal.token_expires_at
    )


@router.post("/login", response_model=LoginResponse)
@rate_limit_auth()
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Authenticate with username and password and return a session token.
    Unknown user and wrong password both return 401 with the same message.
    """
    token, user, expires_at = await AuthService.authenticate(
        db=db,
        username=credentials.username,
        password=credentials.password,
        context=get_request_context(request)
    )
    return LoginResponse(
        token=token,
        expires_at=expires_at,
        user=UserResponse.model_validate(user)
    )


@router.post("/validate", response_model=ValidateResponse)
async def validate_token(
    principal: Optional[Principal] = Depends(get_current_principal_optional)
):
    """
    Check a bearer token. Always 200; `valid` is false for a missing, bad or
    revoked token.
    """
    if principal is None:
        return ValidateResponse(valid=False)
    return ValidateResponse(valid=True, user=_principal_response(principal))


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Change the caller's password. A wrong current password returns 400.
    """
    await AuthService.change_password(
        db=db,
        principal=principal,
        current_password=body.current_password,
        new_password=body.new_password,
        context=context
    )
    return MessageResponse(message="Password changed successfully")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    principal: Principal = Depends(get_current_principal),
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """Record the logout. The client discards its token."""
    await AuthService.logout(db, principal, context=context)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def get_current_user(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the profile of the authenticated user.
    """
    user = await UserService.get_user_by_id(db, principal.user_id)
    if not user:
        raise NotFoundException(detail="User not found")
    return user
