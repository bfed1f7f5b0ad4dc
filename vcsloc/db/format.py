"""Line-oriented key=value encoding shared by every database section.

Each line holds one field. Values are the raw remainder of the line, so
embedded newlines are not representable. Lists are joined with ", ",
booleans are the literals ``true``/``false``, repeated records are
introduced by a ``-- <index>`` marker line.
"""
from typing import List, Optional

LIST_SEPARATOR = ", "
RECORD_MARKER = "-- "


def get_str(line: str, prefix: str) -> Optional[str]:
    """Returns the value after `prefix`, or None if the line has another key."""
    if not line.startswith(prefix):
        return None
    return line[len(prefix):]


def get_int(line: str, prefix: str) -> Optional[int]:
    value = get_str(line, prefix)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def get_bool(line: str, prefix: str) -> Optional[bool]:
    value = get_str(line, prefix)
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def get_list(line: str, prefix: str) -> Optional[List[str]]:
    value = get_str(line, prefix)
    if value is None:
        return None
    if value == "":
        return []
    return value.split(LIST_SEPARATOR)


def get_record_index(line: str) -> Optional[int]:
    return get_int(line, RECORD_MARKER)


def kv(key: str, value) -> str:
    if isinstance(value, bool):
        value = "true" if value else "false"
    elif isinstance(value, (list, tuple)):
        value = LIST_SEPARATOR.join(value)
    return f"{key}={value}\n"


def record_marker(index: int) -> str:
    return f"{RECORD_MARKER}{index}\n"
