from typing import Optional, List, Any, Dict, Tuple
from datetime import datetime, timezone
from sqlalchemy import select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.crud.search import LIKE_ESCAPE, contains_pattern
from app.db.models import User, UserRole, UserPlan, UserStatus
from app.schemas.user import UserRegister
from app.core.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: str) -> Optional[User]:
    try:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_user: {e}")
        return None


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """
    Get a user by email. Emails are stored lowercased.
    """
    try:
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_user_by_email: {e}")
        return None


async def email_taken(db: AsyncSession, email: str, exclude_user_id: Optional[str] = None) -> bool:
    query = select(User.id).where(User.email == email.strip().lower())
    if exclude_user_id:
        query = query.where(User.id != exclude_user_id)
    result = await db.execute(query)
    return result.first() is not None


async def create_user(
    db: AsyncSession,
    user_in: UserRegister,
    role: UserRole = UserRole.lawyer,
    plan: UserPlan = UserPlan.basic,
) -> Optional[User]:
    """
    Create a user with a hashed password and the quota of the given plan.
    """
    try:
        db_user = User(
            name=user_in.name,
            email=user_in.email,
            hashed_password=get_password_hash(user_in.password),
            law_firm=user_in.law_firm,
            role=role,
            plan=plan,
            current_cases=0,
            status=UserStatus.active,
        )
        db.add(db_user)
        await db.commit()
        await db.refresh(db_user)
        logger.info(f"User created: {db_user.id}")
        return db_user
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in create_user: {e}")
        return None


async def authenticate(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """
    Return the user when the email exists and the password matches.
    """
    user = await get_user_by_email(db, email)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


async def update_last_login(db: AsyncSession, user: User) -> Optional[User]:
    try:
        await db.execute(
            update(User)
            .where(User.id == user.id)
            .values(last_login=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        await db.refresh(user)
        return user
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in update_last_login: {e}")
        return None


async def update_user(db: AsyncSession, db_user: User, update_data: Dict[str, Any]) -> Optional[User]:
    """
    Apply a partial update. A "password" key is hashed, a "plan" key
    recomputes the plan limit through the model.
    """
    try:
        if "password" in update_data:
            update_data["hashed_password"] = get_password_hash(update_data.pop("password"))

        for field, value in update_data.items():
            setattr(db_user, field, value)

        await db.commit()
        await db.refresh(db_user)
        return db_user
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in update_user: {e}")
        return None


async def get_users(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 10,
    filters: Optional[Dict[str, Any]] = None,
) -> Tuple[List[User], int]:
    """
    List non-admin users, newest first, with optional search/status/plan filters.
    """
    query = select(User).where(User.role != UserRole.admin)
    if filters:
        if search := filters.get("search"):
            pattern = contains_pattern(search)
            query = query.where(or_(
                func.lower(User.name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(User.email).like(pattern, escape=LIKE_ESCAPE),
                func.lower(User.law_firm).like(pattern, escape=LIKE_ESCAPE),
            ))
        if status := filters.get("status"):
            query = query.where(User.status == status)
        if plan := filters.get("plan"):
            query = query.where(User.plan == plan)

    try:
        total = await db.scalar(select(func.count()).select_from(query.subquery()))
        result = await db.execute(query.order_by(User.created_at.desc()).offset(skip).limit(limit))
        return list(result.scalars().all()), total or 0
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_users: {e}")
        return [], 0


async def get_user_stats(db: AsyncSession) -> Dict[str, Any]:
    lawyers = select(User).where(User.role != UserRole.admin).subquery()
    total = await db.scalar(select(func.count()).select_from(lawyers))
    active = await db.scalar(
        select(func.count()).select_from(lawyers).where(lawyers.c.status == UserStatus.active)
    )
    by_plan_rows = await db.execute(
        select(lawyers.c.plan, func.count()).group_by(lawyers.c.plan)
    )
    by_plan = {plan.value: 0 for plan in UserPlan}
    for plan, count in by_plan_rows.all():
        by_plan[getattr(plan, "value", plan)] = count
    return {"total_users": total or 0, "active_users": active or 0, "users_by_plan": by_plan}
