from datetime import date

from planner.core.errors import ValidationError


def required_text(value: str | None, label: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{label} required")
    return cleaned


def optional_text(value: str | None) -> str | None:
    cleaned = (value or "").strip()
    return cleaned or None


def parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid date {value!r}") from None


def parse_tags(value: str | None) -> list[str] | None:
    tags = [t.strip() for t in (value or "").split(",") if t.strip()]
    return tags or None


def choice(value: str | None, allowed: tuple[str, ...], label: str) -> str | None:
    if not value:
        return None
    if value not in allowed:
        raise ValidationError(f"Invalid {label}")
    return value
