import logging
from typing import Optional, Tuple
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from digital_forms.core.access import Principal
from digital_forms.core.exceptions import InvalidCredentialsException, InvalidArgumentException
from digital_forms.core.logging_utils import sanitize_log_message
from digital_forms.core.security import (
    verify_password,
    dummy_verify_password,
    get_password_hash,
    create_access_token,
    decode_access_token,
    token_lifetime,
)
from digital_forms.models.activity_log import ActivityAction
from digital_forms.models.user import User
from digital_forms.services.activity_service import ActivityService, RequestContext
from digital_forms.services.user_service import UserService

logger = logging.getLogger(__name__)


class AuthService:
    """Credential verification and session tokens."""

    @staticmethod
    async def authenticate(
        db: AsyncSession,
        username: str,
        password: str,
        context: Optional[RequestContext] = None
    ) -> Tuple[str, User, datetime]:
        """
        Verify a username/password pair and issue a session token.

        Unknown, inactive and wrong-password attempts all fail with the same
        error. Unknown usernames still pay for a hash verification.

        Args:
            db: Database session
            username: Submitted username
            password: Submitted password
            context: Client details for the activity log

        Returns:
            Tuple of (token, user, token expiry)

        Raises:
            InvalidCredentialsException on any credential failure
        """
        user = await UserService.get_user_by_username(db, username) if username else None

        if user is None:
            dummy_verify_password()
            logger.warning(sanitize_log_message("Login failed", Reason="unknown_user"))
            raise InvalidCredentialsException()

        password_ok = verify_password(password or "", user.password_hash)
        if not password_ok or not user.is_active:
            logger.warning(
                sanitize_log_message(
                    "Login failed",
                    UserID=user.id,
                    Reason="inactive" if password_ok else "bad_password"
                )
            )
            raise InvalidCredentialsException()

        issued_at = datetime.utcnow()
        expires_at = issued_at + token_lifetime()
        token = create_access_token(
            data={"sub": str(user.id), "username": user.username, "role": user.role.value},
            issued_at=issued_at
        )

        user.last_login = issued_at
        ActivityService.record(
            db,
            ActivityAction.LOGIN,
            user_id=user.id,
            details="User logged in",
            context=context
        )
        await db.commit()
        await db.refresh(user)

        logger.info(sanitize_log_message("Login successful", UserID=user.id, Role=user.role.value))
        return token, user, expires_at

    @staticmethod
    async def validate(db: AsyncSession, token: Optional[str]) -> Optional[Principal]:
        """
        Resolve a session token to a Principal.

        The user record is re-read on every call, so deactivated users lose
        access before their tokens expire and role changes apply immediately.

        Returns:
            Principal, or None if the token or its user is not valid
        """
        payload = decode_access_token(token)
        if not payload:
            return None

        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            logger.warning("Token rejected: malformed subject")
            return None

        user = await UserService.get_user_by_id(db, user_id)
        if user is None or not user.is_active:
            logger.warning(sanitize_log_message("Token rejected: user missing or inactive", UserID=user_id))
            return None

        exp = payload.get("exp")
        return Principal(
            user_id=user.id,
            username=user.username,
            role=user.role,
            token_expires_at=datetime.utcfromtimestamp(exp) if exp else None
        )

    @staticmethod
    async def change_password(
        db: AsyncSession,
        principal: Principal,
        current_password: str,
        new_password: str,
        context: Optional[RequestContext] = None
    ) -> None:
        """
        Replace the caller's password after checking the current one.

        Raises:
            InvalidCredentialsException (400) if the current password is wrong
            InvalidArgumentException if the new password is empty
        """
        user = await UserService.get_user_by_id(db, principal.user_id)
        if user is None or not verify_password(current_password or "", user.password_hash):
            logger.warning(sanitize_log_message("Password change rejected", UserID=principal.user_id))
            raise InvalidCredentialsException(
                detail="Current password is incorrect",
                status_code=400
            )

        if not new_password:
            raise InvalidArgumentException(detail="New password is required")

        user.password_hash = get_password_hash(new_password)
        ActivityService.record(
            db,
            ActivityAction.CHANGE_PASSWORD,
            user_id=user.id,
            details="Password changed",
            context=context
        )
        await db.commit()

        logger.info(sanitize_log_message("Password changed", UserID=user.id))

    @staticmethod
    async def logout(
        db: AsyncSession,
        principal: Principal,
        context: Optional[RequestContext] = None
    ) -> None:
        """Record a logout. Tokens are stateless and simply age out."""
        ActivityService.record(
            db,
            ActivityAction.LOGOUT,
            user_id=principal.user_id,
            details="User logged out",
            context=context
        )
        await db.commit()
