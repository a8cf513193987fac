# utils.py
import re

PACKAGE_NAME_RE = re.compile(r"^[a-zA-Z0-9._+-]+$")
SIZE_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([KMGT]?)(?:i?B)?$", re.IGNORECASE)

SIZE_UNITS = {"": 1, "K": 1024, "M": 1024 ** 2, "G": 1024 ** 3, "T": 1024 ** 4}


def validate_package_name(name: str) -> bool:
    return 0 < len(name) < 256 and bool(PACKAGE_NAME_RE.match(name))


def format_bytes(size: float) -> str:
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while size >= 1024 and i < len(units) - 1:
        size /= 1024
        i += 1
    return f"{round(size, 2):g} {units[i]}"


def format_duration(milliseconds: int) -> str:
    if milliseconds < 1000:
        return f"{milliseconds}ms"
    seconds = milliseconds // 1000
    if seconds < 60:
        return f"{seconds}s"
    minutes, seconds = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {seconds}s" if seconds else f"{minutes}m"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m" if minutes else f"{hours}h"


def parse_size(text: str) -> int:
    """'512', '10K', '1.5G', '1MB' -> bytes. Raises ValueError on garbage."""
    match = SIZE_RE.match(text.strip())
    if not match:
        raise ValueError(f"Invalid size: {text!r}")
    number, unit = match.groups()
    return int(float(number) * SIZE_UNITS[unit.upper()])


def truncate_text(text: str, limit: int = 500) -> str:
    if len(text) <= limit:
        return text
    remaining = len(text) - limit
    return f"{text[:limit]}... ({remaining} more chars)"
