import re

_UNSAFE_CHARS = re.compile(r"[<>'\"&]")


def sanitize_text(text: str) -> str:
    """Strip markup-significant characters (``< > ' " &``) and trim.

    Args:
        text: Raw free-text input (lock name, album title, user name).

    Returns:
        str: Cleaned text; may be empty when the input held only unsafe
        characters or whitespace.
    """
    return _UNSAFE_CHARS.sub("", text).strip()


def sanitize_optional(text: str | None) -> str | None:
    if text is None:
        return None
    return sanitize_text(text)


def normalize_phone_number(phone: str) -> str:
    """Keep digits and the leading ``+`` only."""

    return re.sub(r"[^\d+]", "", phone).strip()
