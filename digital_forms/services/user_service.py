import logging
from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from digital_forms.config import settings
from digital_forms.core.access import Principal, require_admin
from digital_forms.core.exceptions import InvalidArgumentException, NotFoundException
from digital_forms.core.logging_utils import sanitize_log_message
from digital_forms.core.security import get_password_hash
from digital_forms.models.activity_log import ActivityAction
from digital_forms.models.user import User, UserRole
from digital_forms.services.activity_service import ActivityService, RequestContext

logger = logging.getLogger(__name__)

UPDATABLE_USER_FIELDS = ("email", "full_name", "role", "department", "is_active", "password")


class UserService:
    """Identity store: user lookup, provisioning, admin edits and soft deletion."""

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
        """Look up a user by username, active or not."""
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    @staticmethod
    async def list_users(db: AsyncSession) -> List[User]:
        result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def _ensure_unique(
        db: AsyncSession,
        username: Optional[str] = None,
        email: Optional[str] = None,
        exclude_user_id: Optional[int] = None
    ) -> None:
        """
        Raises:
            InvalidArgumentException if the username or email is taken by any user,
            active or inactive. E-mail comparison ignores case.
        """
        conditions = []
        if username is not None:
            conditions.append(User.username == username)
        if email is not None:
            conditions.append(func.lower(User.email) == email.lower())
        if not conditions:
            return

        query = select(User).where(or_(*conditions))
        if exclude_user_id is not None:
            query = query.where(User.id != exclude_user_id)
        result = await db.execute(query)
        if result.scalars().first():
            raise InvalidArgumentException(detail="Username or email already exists")

    @staticmethod
    async def create_user(
        db: AsyncSession,
        username: str,
        password: str,
        email: str,
        full_name: str,
        role: UserRole = UserRole.AGENT,
        department: Optional[str] = None,
        is_active: bool = True,
        created_by: Optional[int] = None,
        context: Optional[RequestContext] = None
    ) -> User:
        """
        Create a user with a hashed password.

        Raises:
            InvalidArgumentException on missing fields or a username/email clash
        """
        username = (username or "").strip()
        full_name = (full_name or "").strip()
        if not username or not password or not email or not full_name:
            raise InvalidArgumentException(
                detail="Username, password, email and full name are required"
            )

        await UserService._ensure_unique(db, username=username, email=email)

        user = User(
            username=username,
            password_hash=get_password_hash(password),
            email=email,
            full_name=full_name,
            role=role,
            department=department,
            is_active=is_active
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # A concurrent create claimed the username or email after the check
            await db.rollback()
            raise InvalidArgumentException(detail="Username or email already exists")

        ActivityService.record(
            db,
            ActivityAction.CREATE_USER,
            user_id=created_by,
            details=f"Created user {username} ({role.value})",
            context=context
        )
        await db.commit()
        await db.refresh(user)

        logger.info(
            sanitize_log_message(
                "User created",
                UserID=user.id,
                Username=user.username,
                Role=user.role.value,
                Email=user.email
            )
        )
        return user

    @staticmethod
    async def update_user(
        db: AsyncSession,
        actor: Principal,
        user_id: int,
        fields: Dict[str, Any],
        context: Optional[RequestContext] = None
    ) -> User:
        """
        Apply an admin edit to a user. Only the provided fields change.

        Raises:
            ForbiddenException unless the actor is an admin
            NotFoundException if no such user
            InvalidArgumentException if no fields given, an email clash, or an
            admin deactivating or demoting their own account
        """
        require_admin(actor)

        updates = {k: v for k, v in fields.items() if k in UPDATABLE_USER_FIELDS}
        if not updates:
            raise InvalidArgumentException(detail="No updates provided")

        user = await UserService.get_user_by_id(db, user_id)
        if not user:
            raise NotFoundException(detail="User not found")

        if updates.get("is_active") is False and user.id == actor.user_id:
            raise InvalidArgumentException(detail="You cannot deactivate your own account")
        if updates.get("role") not in (None, UserRole.ADMIN) and user.id == actor.user_id:
            raise InvalidArgumentException(detail="You cannot remove your own admin role")

        if updates.get("email") is not None and updates["email"].lower() != user.email.lower():
            await UserService._ensure_unique(db, email=updates["email"], exclude_user_id=user.id)

        password = updates.pop("password", None)
        if password:
            user.password_hash = get_password_hash(password)

        for field, value in updates.items():
            if field in ("email", "full_name", "role", "is_active") and value is None:
                continue
            setattr(user, field, value)

        ActivityService.record(
            db,
            ActivityAction.UPDATE_USER,
            user_id=actor.user_id,
            details=f"Updated user {user.username}: {', '.join(sorted(fields))}",
            context=context
        )
        await db.commit()
        await db.refresh(user)

        logger.info(
            sanitize_log_message(
                "User updated",
                UserID=user.id,
                Fields=sorted(fields),
                ActorID=actor.user_id
            )
        )
        return user

    @staticmethod
    async def deactivate_user(
        db: AsyncSession,
        actor: Principal,
        user_id: int,
        context: Optional[RequestContext] = None
    ) -> User:
        """
        Soft-delete a user. Outstanding tokens stop validating immediately.

        Raises:
            ForbiddenException unless the actor is an admin
            NotFoundException if no such user
            InvalidArgumentException if the admin targets their own account
        """
        require_admin(actor)

        user = await UserService.get_user_by_id(db, user_id)
        if not user:
            raise NotFoundException(detail="User not found")

        if user.id == actor.user_id:
            raise InvalidArgumentException(detail="You cannot deactivate your own account")

        user.is_active = False
        ActivityService.record(
            db,
            ActivityAction.DEACTIVATE_USER,
            user_id=actor.user_id,
            details=f"Deactivated user {user.username}",
            context=context
        )
        await db.commit()
        await db.refresh(user)

        logger.info(sanitize_log_message("User deactivated", UserID=user.id, ActorID=actor.user_id))
        return user

    @staticmethod
    async def ensure_bootstrap_admin(db: AsyncSession) -> Optional[User]:
        """
        Create the bootstrap admin from settings if no active admin exists yet.

        If the bootstrap account already exists but lost its admin role or was
        deactivated, it is restored instead of inserted again.

        Returns:
            The created or restored admin, or None if an active admin already existed
        """
        result = await db.execute(
            select(User.id)
            .where(User.role == UserRole.ADMIN, User.is_active.is_(True))
            .limit(1)
        )
        if result.scalar_one_or_none() is not None:
            return None

        existing = await UserService.get_user_by_username(db, settings.BOOTSTRAP_ADMIN_USERNAME)
        if existing is not None:
            existing.role = UserRole.ADMIN
            existing.is_active = True
            ActivityService.record(
                db,
                ActivityAction.BOOTSTRAP_ADMIN,
                user_id=existing.id,
                details="Bootstrap admin restored"
            )
            await db.commit()
            await db.refresh(existing)

            logger.warning(
                sanitize_log_message("Bootstrap admin restored", Username=existing.username)
            )
            return existing

        admin = User(
            username=settings.BOOTSTRAP_ADMIN_USERNAME,
            password_hash=get_password_hash(settings.BOOTSTRAP_ADMIN_PASSWORD),
            email=settings.BOOTSTRAP_ADMIN_EMAIL,
            full_name=settings.BOOTSTRAP_ADMIN_FULL_NAME,
            role=UserRole.ADMIN,
            is_active=True
        )
        db.add(admin)
        await db.flush()

        ActivityService.record(
            db,
            ActivityAction.BOOTSTRAP_ADMIN,
            user_id=admin.id,
            details="Bootstrap admin created"
        )
        await db.commit()
        await db.refresh(admin)

        logger.warning(
            sanitize_log_message("Bootstrap admin created", Username=admin.username)
        )
        return admin
