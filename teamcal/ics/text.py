"""Text property helpers."""

from typing import Optional


def clean_text(value: Optional[str]) -> Optional[str]:
    """Strip carriage returns before handing text to icalendar.

    icalendar's vText escapes backslash, semicolon, comma and newline; a
    bare CR would otherwise pass through unescaped.
    """
    if value is None:
        return None
    return value.replace('\r', '')
