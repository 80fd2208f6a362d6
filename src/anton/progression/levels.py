"""Level table and XP computation.

These values MUST match the web client level table exactly. Levels are
derived from total XP only; stored level numbers are never trusted as input.
"""

from __future__ import annotations

LEVEL_DATA: list[dict] = [
    {"level": 1, "title": "Newbie", "cumulative": 0},
    {"level": 2, "title": "Intern", "cumulative": 20},
    {"level": 3, "title": "Senior Intern", "cumulative": 150},
    {"level": 4, "title": "Fresher", "cumulative": 300},
    {"level": 5, "title": "Junior Dev I", "cumulative": 500},
    {"level": 6, "title": "Junior Dev II", "cumulative": 750},
    {"level": 7, "title": "Junior Dev III", "cumulative": 1050},
    {"level": 8, "title": "Junior Dev IV", "cumulative": 1400},
    {"level": 9, "title": "Junior Dev V", "cumulative": 1800},
    {"level": 10, "title": "Mid-Level Dev I", "cumulative": 2500},
    {"level": 11, "title": "Mid-Level Dev II", "cumulative": 3300},
    {"level": 12, "title": "Mid-Level Dev III", "cumulative": 4200},
    {"level": 13, "title": "Mid-Level Dev IV", "cumulative": 5200},
    {"level": 14, "title": "Mid-Level Dev V", "cumulative": 6300},
    {"level": 15, "title": "Senior Dev I", "cumulative": 8000},
    {"level": 16, "title": "Senior Dev II", "cumulative": 9800},
    {"level": 17, "title": "Senior Dev III", "cumulative": 11700},
    {"level": 18, "title": "Senior Dev IV", "cumulative": 13700},
    {"level": 19, "title": "Senior Dev V", "cumulative": 15800},
    {"level": 20, "title": "Solution Architect", "cumulative": 20000},
]

MIN_LEVEL = LEVEL_DATA[0]["level"]
MAX_LEVEL = LEVEL_DATA[-1]["level"]
DEFAULT_TITLE = LEVEL_DATA[0]["title"]

# XP for a user's first correct answer to a question, by difficulty
XP_BY_DIFFICULTY: dict[str, int] = {
    "EASY": 10,
    "MEDIUM": 25,
    "HARD": 50,
}


def level_for(total_xp: int) -> dict:
    """Return the highest level reached at total_xp.

    Negative XP is clamped to 0. XP beyond the last threshold stays at MAX_LEVEL.
    """
    safe_xp = max(0, total_xp)
    current = LEVEL_DATA[0]

    for entry in LEVEL_DATA:
        if safe_xp >= entry["cumulative"]:
            current = entry
        else:
            break

    return {
        "level": current["level"],
        "title": current["title"],
        "xp_required": current["cumulative"],
    }


def get_level_config(level: int) -> dict | None:
    """Look up a table row by level number."""
    for entry in LEVEL_DATA:
        if entry["level"] == level:
            return entry
    return None


def xp_to_next(level: int, total_xp: int) -> int:
    """XP still needed for level + 1, or 0 at max level."""
    if level >= MAX_LEVEL:
        return 0

    next_entry = get_level_config(level + 1)
    if next_entry is None:
        return 0

    return max(0, next_entry["cumulative"] - total_xp)


def did_level_up(previous_xp: int, new_xp: int) -> bool:
    """True iff new_xp lands on a higher level than previous_xp."""
    return level_for(new_xp)["level"] > level_for(previous_xp)["level"]


def progress_to_next(level: int, total_xp: int) -> float:
    """Percentage (0-100) of the way from the current level to the next."""
    if level >= MAX_LEVEL:
        return 100.0

    current = get_level_config(level)
    nxt = get_level_config(level + 1)
    if current is None or nxt is None:
        return 0.0

    span = nxt["cumulative"] - current["cumulative"]
    if span == 0:
        return 100.0

    progress = (total_xp - current["cumulative"]) / span * 100
    return min(100.0, max(0.0, progress))


def xp_for_difficulty(difficulty: str) -> int:
    """XP value of a first correct answer. Unknown difficulties score as MEDIUM."""
    return XP_BY_DIFFICULTY.get(difficulty, XP_BY_DIFFICULTY["MEDIUM"])
