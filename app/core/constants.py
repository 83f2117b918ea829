from typing import Dict, FrozenSet

# Maximum number of cases a user may hold at once, per subscription plan
PLAN_LIMITS: Dict[str, int] = {
    "basic": 5,
    "professional": 25,
    "enterprise": 100,
}

ALLOWED_FILE_TYPES: FrozenSet[str] = frozenset({
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "image/jpeg",
    "image/png",
    "image/jpg",
})


def plan_limit_for(plan: str) -> int:
    """Look up the case quota for a plan name."""
    return PLAN_LIMITS[plan]

MAX_FILE_NAME_LENGTH = 255


def clip_file_name(filename: str, limit: int = MAX_FILE_NAME_LENGTH) -> str:
    """Shorten a filename to ``limit`` characters, keeping its extension."""
    if len(filename) <= limit:
        return filename
    stem, dot, extension = filename.rpartition(".")
    if not stem or len(extension) >= limit - 1:
        return filename[:limit]
    return f"{stem[:limit - len(extension) - 1]}.{extension}"
