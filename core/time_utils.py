from datetime import date, datetime

from core.errors import ValidationError


def today() -> date:
    return date.today()


def parse_admission_date(value) -> date:
    """Coerce a date, datetime or ISO-8601 string into a calendar date.

    Raises ValidationError when the value is missing or cannot be parsed.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Admission date is required.")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise ValidationError(f"Admission date must be YYYY-MM-DD, got {value!r}.") from None
    raise ValidationError(f"Unsupported admission date: {value!r}")
