import re

# local@domain.tld: no whitespace or "@" in any part, at least one dot after "@"
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(raw_email: str | None) -> str:
    """Normalize an email address for storage and comparison.

    Trims surrounding whitespace and lowercases the address so that
    ``"Test@Example.com "`` and ``"test@example.com"`` compare equal.

    Args:
        raw_email: Email as submitted by the client (may be None).

    Returns:
        str: Normalized email ("" when nothing was submitted).
    """
    if raw_email is None:
        return ""
    return raw_email.strip().lower()


def is_valid_email(email: str) -> bool:
    """Check a normalized email against the two-part address pattern."""
    return EMAIL_PATTERN.fullmatch(email) is not None
