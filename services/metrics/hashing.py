"""Stable short hash of an input payload, used as a coarse dedup key."""
import json
import string
from typing import Any

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def _to_int32(number: int) -> int:
    number &= 0xFFFFFFFF
    return number - 0x100000000 if number & 0x80000000 else number


def hash_input_data(data: Any) -> str:
    """
    Hash the sorted-key compact JSON of ``data``.

    Rolling ``h = h * 31 + unit`` over the UTF-16 code units in signed 32-bit
    arithmetic, then abs() in base 36. Not collision resistant.
    """
    payload = json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)

    h = 0
    encoded = payload.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        h = _to_int32((h << 5) - h + unit)

    return _to_base36(abs(h))
