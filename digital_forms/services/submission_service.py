import csv
import io
import logging
import uuid
from typing import Optional, List, Dict, Any
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import inspect, select, update
from sqlalchemy.orm import selectinload
from digital_forms.core.access import Action, Principal, require_access
from digital_forms.core.exceptions import (
    InvalidArgumentException,
    LinkExpiredException,
    NotFoundException,
)
from digital_forms.core.logging_utils import sanitize_log_message
from digital_forms.models.activity_log import ActivityAction
from digital_forms.models.form_link import FormLink, LinkStatus
from digital_forms.models.submission import FormSubmission, SubmissionStatus
from digital_forms.schemas.submission import SubmissionResponse
from digital_forms.services.activity_service import ActivityService, RequestContext
from digital_forms.services.link_service import LinkService

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "Submission ID",
    "Customer Name",
    "Customer Email",
    "Unit Number",
    "Sales Agent",
    "Submitted At",
    "Status",
    "Agent",
]

# Spreadsheet apps evaluate cells starting with these as formulas
CSV_DANGEROUS_PREFIXES = ("=", "+", "-", "@")


def _csv_safe(value) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.isoformat()
    value = str(value)
    if value.startswith(CSV_DANGEROUS_PREFIXES):
        return f"'{value}"
    return value


class SubmissionService:
    """Service for recording and reviewing customer submissions."""

    @staticmethod
    def to_response(submission: FormSubmission) -> SubmissionResponse:
        """API view of a submission, with unit details when the link is loaded."""
        link = submission.link if "link" not in inspect(submission).unloaded else None
        return SubmissionResponse(
            id=submission.id,
            link_id=submission.link_id,
            owner_user_id=submission.owner_user_id,
            customer_name=submission.customer_name,
            customer_email=submission.customer_email,
            submission_data=submission.submission_data,
            submitted_at=submission.submitted_at,
            status=submission.status,
            review_notes=submission.review_notes,
            reviewed_by=submission.reviewed_by,
            reviewed_at=submission.reviewed_at,
            unit_number=link.unit_number if link is not None else None,
            sales_agent=link.sales_agent if link is not None else None
        )

    @staticmethod
    async def get_usable_link(db: AsyncSession, link_code: str) -> FormLink:
        """
        Resolve a public link code to a link that accepts submissions.

        Raises:
            NotFoundException if the code does not resolve
            LinkExpiredException if the link is expired or deleted
        """
        link = await LinkService.get_by_code(db, link_code)
        if not link:
            raise NotFoundException(detail="Form link not found")
        if not link.is_usable():
            raise LinkExpiredException()
        return link

    @staticmethod
    async def submit(
        db: AsyncSession,
        link_code: str,
        customer_name: Optional[str],
        form_data: Optional[Dict[str, Any]],
        customer_email: Optional[str] = None,
        context: Optional[RequestContext] = None
    ) -> FormSubmission:
        """
        Record an anonymous submission against a link.

        The counter increment, the submission row and the activity entry are
        committed together. The increment is a conditional UPDATE, so
        concurrent submissions never lose a count and a link that stops being
        usable mid-request rejects the submission.

        Args:
            db: Database session
            link_code: Public link code
            customer_name: Submitting customer's name
            form_data: Submitted form payload
            customer_email: Optional customer e-mail
            context: Client details for the activity log

        Returns:
            The pending FormSubmission

        Raises:
            NotFoundException if the code does not resolve
            LinkExpiredException if the link is expired or deleted
            InvalidArgumentException if customer_name or form_data is missing
        """
        link = await SubmissionService.get_usable_link(db, link_code)

        customer_name = (customer_name or "").strip()
        if not customer_name or form_data is None:
            raise InvalidArgumentException(detail="Customer name and form data are required")

        now = datetime.utcnow()
        result = await db.execute(
            update(FormLink)
            .where(
                FormLink.id == link.id,
                FormLink.status == LinkStatus.ACTIVE,
                FormLink.expires_at > now
            )
            .values(submissions_count=FormLink.submissions_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.rollback()
            logger.warning(
                sanitize_log_message("Submission rejected: link no longer usable", LinkID=link.id)
            )
            raise LinkExpiredException()

        submission = FormSubmission(
            id=str(uuid.uuid4()),
            link_id=link.id,
            owner_user_id=link.owner_user_id,
            customer_name=customer_name,
            customer_email=customer_email,
            submission_data=form_data,
            submitted_at=now,
            status=SubmissionStatus.PENDING
        )
        db.add(submission)

        ActivityService.record(
            db,
            ActivityAction.FORM_SUBMISSION,
            user_id=link.owner_user_id,
            details=f"Submission received for unit {link.unit_number}",
            context=context
        )
        await db.commit()
        await db.refresh(submission)

        logger.info(
            sanitize_log_message(
                "Form submission received",
                SubmissionID=submission.id,
                LinkID=link.id,
                LinkCode=link_code,
                CustomerEmail=customer_email
            )
        )
        return submission

    @staticmethod
    async def _get_by_id(db: AsyncSession, submission_id: str) -> Optional[FormSubmission]:
        result = await db.execute(
            select(FormSubmission)
            .options(selectinload(FormSubmission.link))
            .where(FormSubmission.id == submission_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_submission(
        db: AsyncSession,
        principal: Principal,
        submission_id: str
    ) -> FormSubmission:
        """
        Get one submission the caller may read.

        Raises:
            NotFoundException if no such submission
            ForbiddenException if the caller is neither owner nor admin
        """
        submission = await SubmissionService._get_by_id(db, submission_id)
        if not submission:
            raise NotFoundException(detail="Submission not found")
        require_access(principal, submission.owner_user_id, Action.READ, "submission", submission.id)
        return submission

    @staticmethod
    async def review(
        db: AsyncSession,
        actor: Principal,
        submission_id: str,
        new_status: str,
        review_notes: Optional[str] = None,
        context: Optional[RequestContext] = None
    ) -> FormSubmission:
        """
        Set a submission's review status, notes, reviewer and review time.

        Raises:
            NotFoundException if no such submission
            ForbiddenException if the actor is neither owner nor admin
            InvalidArgumentException if new_status is not pending/approved/rejected
        """
        submission = await SubmissionService._get_by_id(db, submission_id)
        if not submission:
            raise NotFoundException(detail="Submission not found")
        require_access(actor, submission.owner_user_id, Action.REVIEW, "submission", submission.id)

        try:
            status = SubmissionStatus(new_status)
        except ValueError:
            allowed = ", ".join(s.value for s in SubmissionStatus)
            raise InvalidArgumentException(detail=f"Status must be one of: {allowed}")

        submission.status = status
        submission.review_notes = review_notes
        submission.reviewed_by = actor.user_id
        submission.reviewed_at = datetime.utcnow()

        ActivityService.record(
            db,
            ActivityAction.REVIEW_SUBMISSION,
            user_id=actor.user_id,
            details=f"Reviewed submission {submission.id}: {status.value}",
            context=context
        )
        await db.commit()

        logger.info(
            sanitize_log_message(
                "Submission reviewed",
                SubmissionID=submission.id,
                Status=status.value,
                ReviewerID=actor.user_id
            )
        )
        return submission

    @staticmethod
    async def list_for_owner(db: AsyncSession, owner_user_id: int) -> List[FormSubmission]:
        """List an owner's submissions, newest first."""
        result = await db.execute(
            select(FormSubmission)
            .options(selectinload(FormSubmission.link))
            .where(FormSubmission.owner_user_id == owner_user_id)
            .order_by(FormSubmission.submitted_at.desc(), FormSubmission.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_all(db: AsyncSession) -> List[FormSubmission]:
        """List every submission, newest first. Callers enforce the admin check."""
        result = await db.execute(
            select(FormSubmission)
            .options(selectinload(FormSubmission.link), selectinload(FormSubmission.owner))
            .order_by(FormSubmission.submitted_at.desc(), FormSubmission.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def export_csv(
        db: AsyncSession,
        actor: Principal,
        context: Optional[RequestContext] = None
    ) -> str:
        """
        Render every submission as CSV text.

        Returns:
            CSV document with a header row
        """
        submissions = await SubmissionService.list_all(db)

        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(CSV_HEADERS)
        for submission in submissions:
            writer.writerow([_csv_safe(value) for value in (
                submission.id,
                submission.customer_name,
                submission.customer_email,
                submission.link.unit_number,
                submission.link.sales_agent,
                submission.submitted_at,
                submission.status.value,
                submission.owner.username,
            )])

        ActivityService.record(
            db,
            ActivityAction.EXPORT_SUBMISSIONS,
            user_id=actor.user_id,
            details=f"Exported {len(submissions)} submissions",
            context=context
        )
        await db.commit()

        logger.info(sanitize_log_message("Submissions exported", Count=len(submissions), ActorID=actor.user_id))
        return buffer.getvalue()
