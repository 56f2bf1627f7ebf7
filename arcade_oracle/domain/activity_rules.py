"""Player activity rules used when a settled game is recorded."""

import math
from datetime import date, timedelta


def week_number(today: date) -> int:
    """Week of the year, weeks starting on Sunday, week 1 contains Jan 1."""
    start_of_year = date(today.year, 1, 1)
    days = (today - start_of_year).days
    # date.weekday() is Monday=0; shift so Sunday=0
    start_weekday = (start_of_year.weekday() + 1) % 7
    return math.ceil((days + start_weekday + 1) / 7)


def next_streak(current_streak: int, last_played: date | None, today: date) -> int:
    """Daily play streak after a game is recorded on `today`.

    Args:
        current_streak (int): stored streak
        last_played (date | None): last day a game was recorded, None if never

    Returns:
        int: unchanged if already played today, +1 if played yesterday, otherwise 1
    """
    if last_played == today:
        return current_streak
    if last_played is not None and last_played == today - timedelta(days=1):
        return current_streak + 1
    return 1
