"""Human-readable interval labels for review previews."""

from datetime import datetime

from backend.srs.fsrs import SchedulingResult, round_half_up


def format_interval(days: float) -> str:
    """Format a scheduled interval (in days) as a short label.

    Zero means a minute-granularity relearning step ("< 1 min").
    """
    if days <= 0:
        return "< 1 min"
    minutes = days * 24 * 60
    if minutes < 60:
        return f"{max(1, round_half_up(minutes))} min"
    if days < 1:
        return f"{round_half_up(days * 24)} hr"
    if days == 1:
        return "1 day"
    if days < 30:
        return f"{round_half_up(days)} days"
    if days < 365:
        return f"{round_half_up(days / 30)} mo"
    return f"{days / 365:.1f} yr"


def due_label(due: datetime, scheduled_days: float, now: datetime) -> str:
    """Label the wait until *due*.

    Learning steps carry scheduled_days == 0, so their label is taken from
    the actual gap between *now* and *due* instead.
    """
    if scheduled_days > 0:
        return format_interval(scheduled_days)
    return format_interval((due - now).total_seconds() / 86400)


def preview_labels(result: SchedulingResult, now: datetime) -> dict[str, str]:
    """Map each rating name to the label of its scheduled wait."""
    return {
        rating.key: due_label(option.due, option.scheduled_days, now)
        for rating, option in result
    }
