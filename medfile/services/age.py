from datetime import date, datetime


def parse_birth_date(value: str | None) -> date | None:
    """Parse an ISO date or datetime string; None when empty or invalid."""
    text = (value or "").strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def calculate_age(date_of_birth: str | None, today: date | None = None) -> int:
    """Whole years between the birth date and today.

    Empty or unparsable input yields 0 so incomplete records still render.
    """
    born = parse_birth_date(date_of_birth)
    if born is None:
        return 0
    today = today or date.today()
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    # A birth date in the future yields 0 rather than a negative age
    return max(age, 0)
