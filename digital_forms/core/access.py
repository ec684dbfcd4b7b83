"""
Ownership-based access policy.

One rule covers every link and submission operation: admins may act on any
resource, everyone else only on resources they own.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from digital_forms.core.exceptions import ForbiddenException
from digital_forms.models.user import UserRole

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    """Operations guarded by the access policy."""
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    REVIEW = "review"


@dataclass(frozen=True)
class Principal:
    """Verified identity attached to a request; only produced by token validation."""
    user_id: int
    username: str
    role: UserRole
    token_expires_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def can_access(principal: Principal, resource_owner_id: int, action: Action) -> bool:
    """
    Decide whether the principal may perform the action on a resource.

    Args:
        principal: Verified caller
        resource_owner_id: owner_user_id recorded on the link or submission
        action: Requested action

    Returns:
        True if allowed, False otherwise
    """
    if principal.is_admin:
        return True
    return resource_owner_id == principal.user_id


def require_access(
    principal: Principal,
    resource_owner_id: int,
    action: Action,
    resource_type: str,
    resource_id: str
) -> None:
    """
    Require access or raise.

    Raises:
        ForbiddenException if the policy denies the action
    """
    if can_access(principal, resource_owner_id, action):
        return

    logger.warning(
        f"ACCESS_DENIED | user_id={principal.user_id} | action={action.value} | "
        f"resource={resource_type}:{resource_id}"
    )
    raise ForbiddenException()


def require_admin(principal: Principal) -> None:
    """
    Raises:
        ForbiddenException unless the principal is an admin
    """
    if not principal.is_admin:
        logger.warning(f"ADMIN_REQUIRED | user_id={principal.user_id}")
        raise ForbiddenException(detail="Admin access required")
