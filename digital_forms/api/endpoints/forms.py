from datetime import datetime
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from digital_forms.database import get_db
from digital_forms.api.deps import get_admin_principal, get_current_principal, get_request_context
from digital_forms.core.access import Principal
from digital_forms.schemas.link import (
    LinkCreateRequest,
    LinkUpdateRequest,
    LinkDetailResponse,
    LinkListResponse,
    LinkResponse,
)
from digital_forms.services.activity_service import RequestContext
from digital_forms.services.link_service import LinkService

router = APIRouter()


@router.post("/create-link", response_model=LinkDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_link(
    body: LinkCreateRequest,
    principal: Principal = Depends(get_current_principal),
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a form link owned by the caller and return it with its public URL.
    """
    link = await LinkService.create_link(
        db=db,
        owner=principal,
        unit_number=body.unit_number,
        sales_agent=body.sales_agent,
        client_email=body.client_email,
        expiry_days=body.expiry_days,
        notes=body.notes,
        context=context
    )
    return LinkDetailResponse(
        message="Form link created successfully",
        link=LinkService.to_response(link)
    )


@router.get("/my-links", response_model=LinkListResponse)
async def get_my_links(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """
    List the caller's links, newest first, with expiry derived at read time.
    """
    links = await LinkService.list_for_owner(db, principal.user_id)
    now = datetime.utcnow()
    return LinkListResponse(links=[LinkService.to_response(link, now) for link in links])


@router.get("/all-links", response_model=LinkListResponse)
async def get_all_links(
    principal: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_db)
):
    """
    List every link with its owner's username. Admin only.
    """
    links = await LinkService.list_all(db)
    now = datetime.utcnow()
    return LinkListResponse(links=[LinkService.to_response(link, now) for link in links])


@router.get("/link/{link_id}", response_model=LinkResponse)
async def get_link(
    link_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Get one link. Owner or admin."""
    link = await LinkService.get_link(db, principal, link_id)
    return LinkService.to_response(link)


@router.put("/link/{link_id}", response_model=LinkDetailResponse)
async def update_link(
    link_id: str,
    body: LinkUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Partially update a link. Owner or admin; only the fields sent change.
    """
    link = await LinkService.update_link(
        db=db,
        actor=principal,
        link_id=link_id,
        fields=body.model_dump(exclude_unset=True),
        context=context
    )
    return LinkDetailResponse(
        message="Form link updated successfully",
        link=LinkService.to_response(link)
    )


@router.delete("/link/{link_id}", response_model=LinkDetailResponse)
async def delete_link(
    link_id: str,
    principal: Principal = Depends(get_current_principal),
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Soft-delete a link. Owner or admin. Deleted links never become active again.
    """
    link = await LinkService.soft_delete(db, principal, link_id, context=context)
    return LinkDetailResponse(
        message="Form link deleted successfully",
        link=LinkService.to_response(link)
    )
