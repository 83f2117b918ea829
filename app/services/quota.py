"""
Plan quota enforcement.

The per-user ``current_cases`` counter is only ever changed through the two
conditional updates below, so the check and the increment happen in a
single statement at the storage layer and concurrent creates cannot push
the counter past ``plan_limit``.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import User, UserPlan
from app.schemas.user import PlanUsage

logger = logging.getLogger(__name__)


class PlanLimitReached(Exception):
    """Raised when a user already holds as many cases as their plan allows."""

    def __init__(self, user_id: str):
        super().__init__(f"Plan limit reached for user {user_id}")
        self.user_id = user_id


async def reserve_case_slot(db: AsyncSession, user_id: str) -> bool:
    """
    Increment the user's case counter if it is below the plan limit.

    Runs inside the caller's transaction; returns False when no slot is left.
    """
    result = await db.execute(
        update(User)
        .where(User.id == user_id, User.current_cases < User.plan_limit)
        .values(current_cases=User.current_cases + 1)
        .execution_options(synchronize_session=False)
    )
    reserved = result.rowcount == 1
    if not reserved:
        logger.info(f"No case slot left for user {user_id}")
    return reserved


async def release_case_slot(db: AsyncSession, user_id: str) -> bool:
    """
    Decrement the user's case counter, never below zero.
    """
    result = await db.execute(
        update(User)
        .where(User.id == user_id, User.current_cases > 0)
        .values(current_cases=User.current_cases - 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(f"Case counter for user {user_id} already at zero")
        return False
    return True


@dataclass(frozen=True)
class QuotaSnapshot:
    plan: UserPlan
    plan_limit: int
    current_cases: int

    @classmethod
    def of(cls, user: User) -> "QuotaSnapshot":
        return cls(plan=UserPlan(user.plan), plan_limit=user.plan_limit, current_cases=user.current_cases)


def is_at_plan_limit(snapshot: QuotaSnapshot) -> bool:
    return snapshot.current_cases >= snapshot.plan_limit


def remaining_cases(snapshot: QuotaSnapshot) -> int:
    return max(0, snapshot.plan_limit - snapshot.current_cases)


def plan_usage_percentage(snapshot: QuotaSnapshot) -> int:
    if snapshot.plan_limit <= 0:
        return 100
    return round(snapshot.current_cases / snapshot.plan_limit * 100)


def plan_usage(snapshot: QuotaSnapshot) -> PlanUsage:
    return PlanUsage(
        plan=snapshot.plan,
        plan_limit=snapshot.plan_limit,
        current_cases=snapshot.current_cases,
        remaining_cases=remaining_cases(snapshot),
        plan_usage_percentage=plan_usage_percentage(snapshot),
        is_at_plan_limit=is_at_plan_limit(snapshot),
    )
