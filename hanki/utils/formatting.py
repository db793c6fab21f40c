"""Human-readable scheduling information for cards."""

from datetime import datetime
from typing import Any, Dict

from ..engine.models import Card
from ..engine.scheduler import DAY_MS, MINUTE_MS

HOUR_MS = 60 * MINUTE_MS


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count != 1 else ''}"


def _describe(abs_diff_ms: int) -> str:
    minutes = abs_diff_ms // MINUTE_MS
    hours = abs_diff_ms // HOUR_MS
    days = abs_diff_ms // DAY_MS
    weeks = days // 7
    months = days // 30

    if months > 0:
        text = _plural(months, "month")
        if days % 30:
            text += f", {_plural(days % 30, 'day')}"
    elif weeks > 0:
        text = _plural(weeks, "week")
        if days % 7:
            text += f", {_plural(days % 7, 'day')}"
    elif days > 0:
        text = _plural(days, "day")
        if hours % 24:
            text += f", {_plural(hours % 24, 'hour')}"
    elif hours > 0:
        text = _plural(hours, "hour")
        if minutes % 60:
            text += f", {_plural(minutes % 60, 'min')}"
    else:
        text = _plural(minutes, "min")
    return text


def format_time_until_due(due_ms: int, now_ms: int) -> str:
    """
    Describe how far away a due time is.

    Returns "Due now" within a minute either way and for cards overdue by
    less than a day, otherwise e.g. "In 3 days, 4 hours" or "Overdue by 2 weeks".
    """
    diff_ms = due_ms - now_ms
    abs_diff_ms = abs(diff_ms)

    if abs_diff_ms < MINUTE_MS:
        return "Due now"

    text = _describe(abs_diff_ms)
    if diff_ms < 0:
        if abs_diff_ms < DAY_MS:
            return "Due now"
        return f"Overdue by {text}"
    return f"In {text}"


def card_debug_info(card: Card, now_ms: int) -> Dict[str, Any]:
    """Scheduling details of a card, for inspection in the CLI."""
    review = card.review
    return {
        "phase": review.phase_name,
        "step_index": review.step_index,
        "ease_factor": round(review.ease_factor, 2),
        "interval_days": review.interval_days,
        "consecutive_correct": review.repetitions,
        "lapses": review.lapses,
        "next_review": format_time_until_due(review.due, now_ms),
        "exact_due_time": datetime.fromtimestamp(review.due / 1000).strftime("%Y-%m-%d %H:%M:%S"),
        "is_due": review.due <= now_ms,
        "suspended": review.suspended,
    }
