import secrets
import string

# Zero width characters used to build invisible url ids
INVISIBLE_CHARS = ["\u200b", "\u2060", "\u200c", "\u200d"]

RANDOM_ALPHABET = string.ascii_letters + string.digits


def random_chars(length: int) -> str:
    return "".join(secrets.choice(RANDOM_ALPHABET) for _ in range(length))


def random_invisible(length: int) -> str:
    return "".join(secrets.choice(INVISIBLE_CHARS) for _ in range(length))


def bytes_to_human(num_bytes: int, si: bool = False, decimals: int = 1) -> str:
    """
    Format a byte count for display.

    Binary units (KiB, MiB, ...) by default, SI units (kB, MB, ...) with si=True.

    Example:
        bytes_to_human(0)        -> "0 B"
        bytes_to_human(1536)     -> "1.5 KiB"
        bytes_to_human(1500, si=True) -> "1.5 kB"
    """
    threshold = 1000 if si else 1024
    if abs(num_bytes) < threshold:
        return f"{num_bytes} B"

    units = (
        ["kB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB"]
        if si
        else ["KiB", "MiB", "GiB", "TiB", "PiB", "EiB", "ZiB", "YiB"]
    )
    value = float(num_bytes)
    unit = -1
    rounding = 10**decimals

    # Keep dividing while the rounded value would still print as >= threshold
    while True:
        value /= threshold
        unit += 1
        if round(abs(value) * rounding) / rounding < threshold or unit == len(units) - 1:
            break

    return f"{value:.{decimals}f} {units[unit]}"
