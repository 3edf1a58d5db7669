"""Field normalization for chat-bot form submissions."""

import re
from typing import Any

COUNTRY_PREFIX = "998"

_NON_DIGITS = re.compile(r"\D")
_INVISIBLE_CHARS = re.compile("[\ufeff\u200b\u200c\u200d\u2060]")
_FORM_VARIABLE = re.compile(r"form_variable_[A-Z0-9]+")
_HTML_LINK = re.compile(r"<a[^>]*>(.*?)</a>", re.IGNORECASE)
_FILE_ID_START = re.compile(r"^[A-Za-z0-9]")


def normalize_phone(raw: Any) -> str:
    """Format a phone number as +998XXXXXXXXX.

    Numbers without the country prefix are assumed to be domestic. No length
    validation is done; an input with no digits yields "".
    """
    if not raw:
        return ""
    digits = _NON_DIGITS.sub("", str(raw))
    if not digits:
        return ""
    if digits.startswith(COUNTRY_PREFIX):
        return f"+{digits}"
    return f"+{COUNTRY_PREFIX}{digits}"


def is_telegram_file_id(value: Any) -> bool:
    """Heuristic: long single-token alphanumeric-led string.

    Long free-text answers without spaces are indistinguishable from file IDs.
    """
    return (
        isinstance(value, str)
        and bool(_FILE_ID_START.match(value))
        and len(value) > 20
        and " " not in value
    )


def extract_inner_text_from_html_link(value: Any) -> str:
    """Return the text of an <a> tag, or the value itself when it is not one."""
    if not value:
        return ""
    match = _HTML_LINK.search(value)
    return match.group(1) if match else value


def sanitize_from_bom(text: Any) -> Any:
    if not isinstance(text, str):
        return text
    return _INVISIBLE_CHARS.sub("", text).strip()


def clean_form_value(value: Any) -> str | None:
    """Clean a raw form value. Empty results become None."""
    if value is None:
        return None
    cleaned = _INVISIBLE_CHARS.sub("", str(value))
    # PuzzleBot leaks unresolved placeholders for skipped questions
    cleaned = _FORM_VARIABLE.sub("", cleaned).strip()
    return cleaned or None
