import re

_ID_PATTERN = re.compile(r"[+-]?[0-9]+")


def parse_id(value: str | None) -> int | None:
    """Parse a numeric identifier from a path or form value, ``None`` if it isn't one.

    Only ASCII digits with an optional sign are accepted.
    """
    if value is None:
        return None
    text = value.strip()
    if not _ID_PATTERN.fullmatch(text):
        return None
    return int(text)
