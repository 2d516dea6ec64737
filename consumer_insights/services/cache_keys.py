"""Cache keys for first-stage aggregate reports.

The key is a 32-bit rolling string hash (``h * 31 + code point``) over the
sorted, comma-joined document ids. It is NOT cryptographic: collisions are
possible and tolerated, since a collision only means a stale cached report
for the same user. Never use it for anything security-sensitive.
"""
from __future__ import annotations

from collections.abc import Iterable

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_DIGITS[rem])
    return "".join(reversed(digits))


def string_hash(text: str) -> int:
    h = 0
    for char in text:
        h = _to_int32((h << 5) - h + ord(char))
    return h


def generate_cache_key(document_ids: Iterable[str]) -> str:
    """Order-independent fingerprint of a document id set."""
    joined = ",".join(sorted(str(doc_id) for doc_id in document_ids))
    return f"cache_{_base36(abs(string_hash(joined)))}"
