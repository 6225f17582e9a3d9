"""Text helpers for user-supplied input."""
import re

_TAG_PATTERN = re.compile(r"<[^>]*>")


def sanitize_text(value: str) -> str:
    """Strip markup-like tags and surrounding whitespace.

    ``"<b>Hi</b>"`` becomes ``"Hi"``. An unterminated ``<`` is left alone.
    """
    return _TAG_PATTERN.sub("", value).strip()
