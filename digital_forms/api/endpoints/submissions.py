import logging
from datetime import datetime
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from digital_forms.database import get_db
from digital_forms.api.deps import get_admin_principal, get_current_principal, get_request_context
from digital_forms.core.access import Principal
from digital_forms.core.exceptions import LinkExpiredException, NotFoundException
from digital_forms.core.logging_utils import sanitize_log_message
from digital_forms.middleware.rate_limit import rate_limit_public
from digital_forms.schemas.link import PublicLinkResponse
from digital_forms.schemas.submission import (
    SubmissionCreateRequest,
    SubmissionCreateResponse,
    ReviewRequest,
    SubmissionResponse,
    SubmissionListResponse,
    SubmissionDetailResponse,
)
from digital_forms.services.activity_service import RequestContext
from digital_forms.services.submission_service import SubmissionService

logger = logging.getLogger(__name__)

router = APIRouter()

# Customers see the same message whether a code never existed or has lapsed
LINK_UNAVAILABLE_MESSAGE = "This form link is no longer available"


def _unavailable(exc: Exception, link_code: str) -> Exception:
    logger.info(
        sanitize_log_message(
            "Public link unavailable",
            Reason=type(exc).__name__,
            LinkCode=link_code
        )
    )
    return type(exc)(detail=LINK_UNAVAILABLE_MESSAGE)


@router.get("/form/{link_code}", response_model=PublicLinkResponse)
@rate_limit_public()
async def get_public_form(
    request: Request,
    link_code: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Get what the public form page shows for a usable link.
    Public endpoint.
    """
    try:
        link = await SubmissionService.get_usable_link(db, link_code)
    except (NotFoundException, LinkExpiredException) as exc:
        raise _unavailable(exc, link_code)

    return PublicLinkResponse(
        unit_number=link.unit_number,
        sales_agent=link.sales_agent,
        expires_at=link.expires_at
    )


@router.post("/submit/{link_code}", response_model=SubmissionCreateResponse, status_code=status.HTTP_201_CREATED)
@rate_limit_public()
async def submit_form(
    request: Request,
    link_code: str,
    body: SubmissionCreateRequest,
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Submit customer data through a link.
    Public endpoint. 404 for an unknown code, 410 for an expired or deleted link.
    """
    try:
        submission = await SubmissionService.submit(
            db=db,
            link_code=link_code,
            customer_name=body.customer_name,
            form_data=body.form_data,
            customer_email=body.customer_email,
            context=context
        )
    except (NotFoundException, LinkExpiredException) as exc:
        raise _unavailable(exc, link_code)

    return SubmissionCreateResponse(submission_id=submission.id)


@router.get("/my-submissions", response_model=SubmissionListResponse)
async def get_my_submissions(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """List submissions received through the caller's links, newest first."""
    submissions = await SubmissionService.list_for_owner(db, principal.user_id)
    return SubmissionListResponse(
        submissions=[SubmissionService.to_response(s) for s in submissions]
    )


@router.get("/all-submissions", response_model=SubmissionListResponse)
async def get_all_submissions(
    principal: Principal = Depends(get_admin_principal),
    db: AsyncSession = Depends(get_db)
):
    """List every submission, newest first. Admin only."""
    submissions = await SubmissionService.list_all(db)
    return SubmissionListResponse(
        submissions=[SubmissionService.to_response(s) for s in submissions]
    )


@router.get("/export/csv")
async def export_submissions_csv(
    principal: Principal = Depends(get_admin_principal),
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Download all submissions as CSV. Admin only.
    """
    content = await SubmissionService.export_csv(db, principal, context=context)
    filename = f"submissions_{datetime.utcnow().strftime('%Y%m%d')}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Get one submission. Owner or admin."""
    submission = await SubmissionService.get_submission(db, principal, submission_id)
    return SubmissionService.to_response(submission)


@router.put("/{submission_id}/review", response_model=SubmissionDetailResponse)
async def review_submission(
    submission_id: str,
    body: ReviewRequest,
    principal: Principal = Depends(get_current_principal),
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Set a submission's status to pending, approved or rejected. Owner or admin.
    """
    submission = await SubmissionService.review(
        db=db,
        actor=principal,
        submission_id=submission_id,
        new_status=body.status,
        review_notes=body.review_notes,
        context=context
    )
    return SubmissionDetailResponse(
        message="Submission reviewed successfully",
        submission=SubmissionService.to_response(submission)
    )
