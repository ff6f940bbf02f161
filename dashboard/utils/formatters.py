"""
Formatting utilities for dashboard display.
"""

from datetime import UTC, datetime
from typing import Any

from dashboard.utils.constants import DATETIME_FORMATS, DEFAULT_CONFIG, STATUS_ICONS


def parse_datetime(dt: str | datetime | None) -> datetime | None:
    """Parse an ISO string (WooCommerce or API) into an aware datetime."""
    if dt is None or isinstance(dt, datetime):
        return dt
    try:
        parsed = datetime.fromisoformat(dt.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_datetime(dt: str | datetime | None, format_type: str = "display") -> str:
    """
    Format datetime string or object for display.

    Args:
        dt: Datetime string (ISO format) or datetime object
        format_type: Format type from DATETIME_FORMATS

    Returns:
        Formatted datetime string
    """
    if dt is None:
        return "N/A"

    parsed = parse_datetime(dt)
    if parsed is None:
        return str(dt)

    fmt = DATETIME_FORMATS.get(format_type, DATETIME_FORMATS["display"])
    return parsed.strftime(fmt)


def format_currency(value: Any, currency: str | None = None) -> str:
    """
    Format an amount with two decimals and the store currency.

    WooCommerce sends amounts as strings, so anything numeric-looking is accepted.
    """
    if value is None or value == "":
        return "N/A"
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return str(value)
    return f"{amount:,.2f} {currency or DEFAULT_CONFIG['currency']}"


def format_number(value: int | float | None, decimals: int = 0) -> str:
    """
    Format number with thousand separators.

    Args:
        value: Number to format
        decimals: Decimal places

    Returns:
        Formatted number string
    """
    if value is None:
        return "N/A"

    if decimals > 0:
        return f"{value:,.{decimals}f}"
    else:
        return f"{int(value):,}"


def format_usage(current: int | None, limit: int | None) -> str:
    """Usage against a plan limit, e.g. "12 / 100"."""
    if limit is None:
        return format_number(current)
    return f"{format_number(current)} / {format_number(limit)}"


def usage_ratio(current: int | None, limit: int | None) -> float:
    """Fraction of the limit consumed, clamped to [0, 1] for progress bars."""
    if not limit or current is None:
        return 0.0
    return max(0.0, min(1.0, current / limit))


def get_status_icon(status: str | bool | None) -> str:
    """
    Get emoji icon for status.

    Args:
        status: Status string or boolean

    Returns:
        Emoji icon
    """
    if isinstance(status, bool):
        return STATUS_ICONS["success"] if status else STATUS_ICONS["error"]
    if not status:
        return STATUS_ICONS["unknown"]
    return STATUS_ICONS.get(str(status).lower(), STATUS_ICONS["unknown"])


def customer_name(entity: dict[str, Any]) -> str:
    """Display name for a WooCommerce customer or an order's billing block."""
    billing = entity.get("billing") or {}
    first = entity.get("first_name") or billing.get("first_name") or ""
    last = entity.get("last_name") or billing.get("last_name") or ""
    name = f"{first} {last}".strip()
    return name or entity.get("email") or billing.get("email") or "Client invité"


def truncate_text(text: str | None, max_length: int = 50, suffix: str = "...") -> str:
    """
    Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if not text:
        return ""
    if len(text) <= max_length:
        return text

    return text[: max_length - len(suffix)] + suffix


def time_ago(dt: str | datetime | None) -> str:
    """
    Format datetime as time ago (e.g., "hace 2 horas").

    Args:
        dt: Datetime string or object

    Returns:
        Time ago string
    """
    if dt is None:
        return "N/A"

    parsed = parse_datetime(dt)
    if parsed is None:
        return str(dt)

    seconds = (datetime.now(UTC) - parsed).total_seconds()

    if seconds < 60:
        return "ahora mismo"
    elif seconds < 3600:
        minutes = int(seconds / 60)
        return f"hace {minutes} min" if minutes > 1 else "hace 1 min"
    elif seconds < 86400:
        hours = int(seconds / 3600)
        return f"hace {hours} horas" if hours > 1 else "hace 1 hora"
    else:
        days = int(seconds / 86400)
        return f"hace {days} días" if days > 1 else "hace 1 día"
