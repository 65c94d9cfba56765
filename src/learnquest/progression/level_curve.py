"""XP-to-level math. Pure functions, no state.

Level ``n`` costs ``xp_required_for_level(n)`` XP to clear. A level is
reached once lifetime XP strictly exceeds the cumulative cost of all levels
below it, so the XP that exactly fills a level still belongs to that level:
100 total XP is a full level 1, the 101st XP reaches level 2.
"""

from pydantic import BaseModel


def xp_required_for_level(level: int) -> int:
    """XP needed to clear ``level``: 100, 150, 200, 250, 300, 450, 500, ..."""
    if level < 1:
        raise ValueError(f"level must be >= 1, got {level}")
    return 100 + (level - 1) * 50 + ((level - 1) // 5) * 100


def cumulative_xp_for_level(level: int) -> int:
    """Total XP spent clearing levels 1..level-1."""
    if level < 1:
        raise ValueError(f"level must be >= 1, got {level}")
    return sum(xp_required_for_level(k) for k in range(1, level))


def level_for_total_xp(total_xp: int) -> int:
    """Level reached with ``total_xp`` lifetime XP."""
    if total_xp < 0:
        raise ValueError(f"total_xp must be >= 0, got {total_xp}")
    level = 1
    threshold = xp_required_for_level(1)
    # Walk level by level so multi-level jumps land correctly
    while total_xp > threshold:
        level += 1
        threshold += xp_required_for_level(level)
    return level


class LevelProgress(BaseModel):
    level: int
    xp_into_level: int
    xp_for_next_level: int
    ratio: float


def level_progress(total_xp: int) -> LevelProgress:
    """Position inside the current level, for progress bars."""
    level = level_for_total_xp(total_xp)
    into = total_xp - cumulative_xp_for_level(level)
    needed = xp_required_for_level(level)
    return LevelProgress(
        level=level,
        xp_into_level=into,
        xp_for_next_level=needed,
        ratio=min(1.0, into / needed),
    )
