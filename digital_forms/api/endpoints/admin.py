from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from digital_forms.database import get_db
from digital_forms.api.deps import get_admin_principal, get_request_context
from digital_forms.core.access import Principal
from digital_forms.schemas.activity import ActivityLogResponse, ActivityLogListResponse
from digital_forms.schemas.auth import MessageResponse
from digital_forms.schemas.user import (
    UserCreateRequest,
    UserUpdateRequest,
    UserResponse,
    UserListResponse,
)
from digital_forms.models.activity_log import ActivityAction
from digital_forms.services.activity_service import ActivityService, RequestContext
from digital_forms.services.user_service import UserService

router = APIRouter()


@router.get("/users", response_model=UserListResponse)
async def list_users(
    principal: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_db)
):
    """List all users, active and inactive."""
    users = await UserService.list_users(db)
    return UserListResponse(users=[UserResponse.model_validate(u) for u in users])


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreateRequest,
    principal: Principal = Depends(get_admin_principal),
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Create an agent or admin. Username and e-mail must be unused.
    """
    return await UserService.create_user(
        db=db,
        username=body.username,
        password=body.password,
        email=body.email,
        full_name=body.full_name,
        role=body.role,
        department=body.department,
        is_active=body.is_active,
        created_by=principal.user_id,
        context=context
    )


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    body: UserUpdateRequest,
    principal: Principal = Depends(get_admin_principal),
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Edit a user's profile, role or active flag, or reset their password.
    """
    return await UserService.update_user(
        db=db,
        actor=principal,
        user_id=user_id,
        fields=body.model_dump(exclude_unset=True),
        context=context
    )


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def deactivate_user(
    user_id: int,
    principal: Principal = Depends(get_admin_principal),
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Deactivate a user. Users are never physically deleted.
    """
    user = await UserService.deactivate_user(db, principal, user_id, context=context)
    return MessageResponse(message=f"User {user.username} deactivated")


@router.get("/activity", response_model=ActivityLogListResponse)
async def get_activity_logs(
    user_id: Optional[int] = Query(None),
    action: Optional[ActivityAction] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_db)
):
    """
    Query the activity log, newest first.
    """
    logs, total = await ActivityService.get_activity_logs(
        db=db,
        user_id=user_id,
        action=action,
        limit=limit,
        offset=offset
    )
    return ActivityLogListResponse(
        logs=[ActivityLogResponse.model_validate(log) for log in logs],
        total=total,
        limit=limit,
        offset=offset
    )
