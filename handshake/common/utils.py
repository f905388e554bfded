"""Helper signatures: hex_dump, sha256_bytes, constant_time_compare."""

import hashlib
import hmac
from typing import Union


def hex_dump(b: bytes, width: int = 32) -> str:
    """Format bytes as lowercase hex, `width` bytes per line."""
    h = b.hex()
    step = width * 2
    return "\n".join(h[i:i + step] for i in range(0, len(h), step))


def sha256_bytes(data: Union[bytes, str]) -> bytes:
    """Compute SHA-256 hash and return as bytes."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).digest()


def constant_time_compare(a: Union[bytes, str], b: Union[bytes, str]) -> bool:
    """Constant-time comparison to prevent timing attacks."""
    if isinstance(a, str):
        a = a.encode('utf-8')
    if isinstance(b, str):
        b = b.encode('utf-8')
    return hmac.compare_digest(a, b)
