"""
Authentication service handling registration, login and manager roles.

There is no built-in admin account. The first manager is provisioned by an
operator with `python -m app.cli create-manager`; after that, managers can
promote and demote other users.
"""

from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User, UserRole
from app.schemas.user import UserCreate, UserLogin
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from app.core.security import hash_password, verify_password, create_access_token
from app.core.logging import get_logger

logger = get_logger(__name__)


async def _taken(db: AsyncSession, column, value) -> bool:
    result = await db.execute(select(User.id).where(column == value))
    return result.scalar_one_or_none() is not None


async def register_user(db: AsyncSession, user_data: UserCreate, role: str = UserRole.CUSTOMER) -> User:
    """
    Register a new user with hashed password.
    Raises ConflictError if email or username already exists.
    """
    email = user_data.email.lower()

    if await _taken(db, User.email, email):
        logger.warning("registration_failed", reason="email_exists", email=email)
        raise ConflictError("Email already registered")

    if await _taken(db, User.username, user_data.username):
        logger.warning("registration_failed", reason="username_exists", username=user_data.username)
        raise ConflictError("Username already taken")

    user = User(
        email=email,
        username=user_data.username,
        hashed_password=hash_password(user_data.password),
        role=role,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email/username
        await db.rollback()
        logger.warning("registration_failed", reason="concurrent_duplicate", email=email)
        raise ConflictError("Email or username already registered")
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, email=user.email, role=role)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> str:
    """
    Authenticate user and return JWT access token.
    Raises UnauthorizedError if credentials are invalid.
    """
    result = await db.execute(select(User).where(User.email == login_data.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise UnauthorizedError("Invalid email or password")

    if not user.is_active:
        raise ForbiddenError("Account is deactivated")

    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    logger.info("user_logged_in", user_id=user.id, role=user.role)
    return token


async def list_users(db: AsyncSession, query: Optional[str] = None, limit: int = 200) -> list[User]:
    stmt = select(User)
    if query:
        pattern = f"%{query}%"
        stmt = stmt.where(or_(User.username.ilike(pattern), User.email.ilike(pattern)))
    result = await db.execute(stmt.order_by(User.created_at.desc(), User.id.desc()).limit(limit))
    return list(result.scalars().all())


async def set_role(db: AsyncSession, user_id: int, role: str, acting_user: Optional[User] = None) -> User:
    """Promote or demote a user. A manager cannot demote themself."""
    if role not in UserRole.ALL:
        raise ValidationError.for_field("role", f"Role must be one of {', '.join(UserRole.ALL)}")

    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    if user.role == role:
        raise ValidationError.for_field("role", f"User is already a {role}")

    if acting_user is not None and acting_user.id == user.id and role != UserRole.MANAGER:
        raise ValidationError.for_field("role", "Managers cannot demote themselves")

    previous = user.role
    user.role = role
    await db.flush()
    await db.refresh(user)

    logger.info(
        "user_role_changed",
        user_id=user.id,
        from_role=previous,
        to_role=role,
        by_user_id=acting_user.id if acting_user else None,
    )
    return user


async def provision_manager(db: AsyncSession, user_data: UserCreate) -> User:
    """One-time operator bootstrap: create a manager account."""
    return await register_user(db, user_data, role=UserRole.MANAGER)


async def promote_by_email(db: AsyncSession, email: str) -> User:
    result = await db.execute(select(User).where(User.email == email.lower()))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")
    return await set_role(db, user.id, UserRole.MANAGER)
