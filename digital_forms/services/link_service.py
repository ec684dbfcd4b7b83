import logging
import secrets
import uuid
from typing import Optional, List, Dict, Any
from datetime import datetime, timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import inspect, select
from sqlalchemy.orm import selectinload
from digital_forms.config import settings
from digital_forms.core.access import Action, Principal, require_access
from digital_forms.core.exceptions import InvalidArgumentException, NotFoundException
from digital_forms.core.logging_utils import sanitize_log_message
from digital_forms.models.activity_log import ActivityAction
from digital_forms.models.form_link import FormLink, LinkStatus, EffectiveLinkStatus
from digital_forms.schemas.link import LinkResponse
from digital_forms.services.activity_service import ActivityService, RequestContext

logger = logging.getLogger(__name__)

UPDATABLE_LINK_FIELDS = ("unit_number", "sales_agent", "client_email", "expiry_days", "notes")
REQUIRED_TEXT_FIELDS = ("unit_number", "sales_agent")


class LinkService:
    """Service for creating, looking up and retiring form links."""

    @staticmethod
    def _generate_link_code() -> str:
        """
        Generate an unguessable public link code.

        Returns:
            URL-safe random string (192 bits of entropy)
        """
        return secrets.token_urlsafe(24)

    @staticmethod
    def _validate_expiry_days(expiry_days: int) -> int:
        if expiry_days < 0 or expiry_days > settings.MAX_LINK_EXPIRY_DAYS:
            raise InvalidArgumentException(
                detail=f"expiry_days must be between 0 and {settings.MAX_LINK_EXPIRY_DAYS}"
            )
        return expiry_days

    @staticmethod
    def public_url(link_code: str) -> str:
        return f"{settings.PUBLIC_FORM_BASE_URL.rstrip('/')}/{link_code}"

    @staticmethod
    def to_response(link: FormLink, now: Optional[datetime] = None) -> LinkResponse:
        """Build the API view of a link, deriving its effective status at `now`."""
        effective = link.effective_status(now)
        owner = link.owner if "owner" not in inspect(link).unloaded else None
        return LinkResponse(
            id=link.id,
            owner_user_id=link.owner_user_id,
            owner_username=owner.username if owner is not None else None,
            unit_number=link.unit_number,
            sales_agent=link.sales_agent,
            link_code=link.link_code,
            public_url=LinkService.public_url(link.link_code),
            client_email=link.client_email,
            expiry_days=link.expiry_days,
            created_at=link.created_at,
            expires_at=link.expires_at,
            status=effective,
            is_expired=effective == EffectiveLinkStatus.EXPIRED,
            submissions_count=link.submissions_count,
            notes=link.notes
        )

    @staticmethod
    async def create_link(
        db: AsyncSession,
        owner: Principal,
        unit_number: str,
        sales_agent: str,
        client_email: Optional[str] = None,
        expiry_days: Optional[int] = None,
        notes: Optional[str] = None,
        context: Optional[RequestContext] = None
    ) -> FormLink:
        """
        Create a form link owned by the caller.

        Args:
            db: Database session
            owner: Authenticated caller; becomes the link owner
            unit_number: Unit/property the link is for
            sales_agent: Display name shown on the public form
            client_email: Optional intended recipient
            expiry_days: Lifetime in days (default from settings)
            notes: Optional free text

        Returns:
            Created FormLink with expires_at = created_at + expiry_days

        Raises:
            InvalidArgumentException if unit_number or sales_agent is empty
            or expiry_days is out of range
        """
        unit_number = (unit_number or "").strip()
        sales_agent = (sales_agent or "").strip()
        if not unit_number or not sales_agent:
            raise InvalidArgumentException(detail="Unit number and sales agent are required")

        if expiry_days is None:
            expiry_days = settings.DEFAULT_LINK_EXPIRY_DAYS
        LinkService._validate_expiry_days(expiry_days)

        created_at = datetime.utcnow()
        link = FormLink(
            id=str(uuid.uuid4()),
            owner_user_id=owner.user_id,
            unit_number=unit_number,
            sales_agent=sales_agent,
            link_code=LinkService._generate_link_code(),
            client_email=client_email,
            expiry_days=expiry_days,
            created_at=created_at,
            expires_at=created_at + timedelta(days=expiry_days),
            status=LinkStatus.ACTIVE,
            submissions_count=0,
            notes=notes
        )
        db.add(link)

        ActivityService.record(
            db,
            ActivityAction.CREATE_FORM_LINK,
            user_id=owner.user_id,
            details=f"Created form link for unit {unit_number}",
            context=context
        )
        await db.commit()
        await db.refresh(link)

        logger.info(
            sanitize_log_message(
                "Form link created",
                LinkID=link.id,
                LinkCode=link.link_code,
                OwnerID=owner.user_id,
                ExpiryDays=expiry_days
            )
        )
        return link

    @staticmethod
    async def get_by_code(db: AsyncSession, link_code: str) -> Optional[FormLink]:
        """
        Look up a link by its public code, regardless of owner or status.

        Read-only: never touches submissions_count.
        """
        if not link_code:
            return None
        result = await db.execute(select(FormLink).where(FormLink.link_code == link_code))
        return result.scalar_one_or_none()

    @staticmethod
    async def _get_by_id(db: AsyncSession, link_id: str) -> Optional[FormLink]:
        result = await db.execute(select(FormLink).where(FormLink.id == link_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_link(db: AsyncSession, principal: Principal, link_id: str) -> FormLink:
        """
        Get one link the caller may read.

        Raises:
            NotFoundException if no such link
            ForbiddenException if the caller is neither owner nor admin
        """
        link = await LinkService._get_by_id(db, link_id)
        if not link:
            raise NotFoundException(detail="Form link not found")
        require_access(principal, link.owner_user_id, Action.READ, "form_link", link.id)
        return link

    @staticmethod
    async def list_for_owner(db: AsyncSession, owner_user_id: int) -> List[FormLink]:
        """List an owner's links, newest first. Includes deleted and expired links."""
        result = await db.execute(
            select(FormLink)
            .where(FormLink.owner_user_id == owner_user_id)
            .order_by(FormLink.created_at.desc(), FormLink.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_all(db: AsyncSession) -> List[FormLink]:
        """List every link with its owner loaded, newest first."""
        result = await db.execute(
            select(FormLink)
            .options(selectinload(FormLink.owner))
            .order_by(FormLink.created_at.desc(), FormLink.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def update_link(
        db: AsyncSession,
        actor: Principal,
        link_id: str,
        fields: Dict[str, Any],
        context: Optional[RequestContext] = None
    ) -> FormLink:
        """
        Apply a partial update to a link.

        Changing expiry_days recomputes expires_at from created_at.

        Raises:
            NotFoundException if no such link
            ForbiddenException if the actor is neither owner nor admin
            InvalidArgumentException if no fields are given or a value is invalid
        """
        link = await LinkService._get_by_id(db, link_id)
        if not link:
            raise NotFoundException(detail="Form link not found")
        require_access(actor, link.owner_user_id, Action.UPDATE, "form_link", link.id)

        updates = {k: v for k, v in fields.items() if k in UPDATABLE_LINK_FIELDS}
        if not updates:
            raise InvalidArgumentException(detail="No updates provided")

        for field in REQUIRED_TEXT_FIELDS:
            if field in updates:
                value = (updates[field] or "").strip()
                if not value:
                    raise InvalidArgumentException(detail=f"{field} cannot be empty")
                updates[field] = value

        if "expiry_days" in updates:
            if updates["expiry_days"] is None:
                raise InvalidArgumentException(detail="expiry_days cannot be empty")
            LinkService._validate_expiry_days(updates["expiry_days"])

        for field, value in updates.items():
            setattr(link, field, value)
        if "expiry_days" in updates:
            link.expires_at = link.created_at + timedelta(days=link.expiry_days)

        ActivityService.record(
            db,
            ActivityAction.UPDATE_FORM_LINK,
            user_id=actor.user_id,
            details=f"Updated form link {link.id}: {', '.join(sorted(updates))}",
            context=context
        )
        await db.commit()
        await db.refresh(link)

        logger.info(
            sanitize_log_message(
                "Form link updated",
                LinkID=link.id,
                Fields=sorted(updates),
                ActorID=actor.user_id
            )
        )
        return link

    @staticmethod
    async def soft_delete(
        db: AsyncSession,
        actor: Principal,
        link_id: str,
        context: Optional[RequestContext] = None
    ) -> FormLink:
        """
        Mark a link deleted. There is no way back to active.

        Raises:
            NotFoundException if no such link
            ForbiddenException if the actor is neither owner nor admin
        """
        link = await LinkService._get_by_id(db, link_id)
        if not link:
            raise NotFoundException(detail="Form link not found")
        require_access(actor, link.owner_user_id, Action.DELETE, "form_link", link.id)

        link.status = LinkStatus.DELETED
        ActivityService.record(
            db,
            ActivityAction.DELETE_FORM_LINK,
            user_id=actor.user_id,
            details=f"Deleted form link {link.id} (unit {link.unit_number})",
            context=context
        )
        await db.commit()
        await db.refresh(link)

        logger.info(sanitize_log_message("Form link deleted", LinkID=link.id, ActorID=actor.user_id))
        return link
