LIKE_ESCAPE = "\\"


def contains_pattern(term: str) -> str:
    """Case-folded LIKE pattern matching ``term`` anywhere, wildcards taken literally."""
    escaped = (
        term.lower()
        .replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"
