"""Fixed DH group: 1024-bit MODP safe prime (RFC 2409 Oakley group 2), g = 2."""

import logging
from functools import lru_cache

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

# RFC 2409, Section 6.2 - Second Oakley Group (1024-bit MODP)
P1024_HEX = (
    "FFFFFFFF FFFFFFFF C90FDAA2 2168C234 C4C6628B 80DC1CD1"
    "29024E08 8A67CC74 020BBEA6 3B139B22 514A0879 8E3404DD"
    "EF9519B3 CD3A431B 302B0A6D F25F1437 4FE1356D 6D51C245"
    "E485B576 625E7EC6 F44C42E9 A637ED6B 0BFF5CB6 F406B7ED"
    "EE386BFB 5A899FA5 AE9F2411 7C4B1FE6 49286651 ECE65381"
    "FFFFFFFF FFFFFFFF"
)

GENERATOR = 2


class GroupParameterError(Exception):
    """Raised when the embedded group constants cannot be parsed."""
    pass


class GroupParameters(BaseModel):
    """
    Modulus, generator and subgroup order of a DH group.

    Instances are frozen; one is shared by every context in the process.
    """
    model_config = ConfigDict(frozen=True)

    p: int
    g: int
    q: int

    @property
    def bits(self) -> int:
        return self.p.bit_length()

    @property
    def byte_length(self) -> int:
        """Width in bytes of a fixed-width encoded group element."""
        return (self.bits + 7) // 8


def parse_hex_constant(hex_str: str) -> int:
    """
    Parse a hex constant that may contain whitespace.

    Raises:
        GroupParameterError if the string is empty or not hex
    """
    cleaned = "".join(hex_str.split())
    if not cleaned:
        raise GroupParameterError("Empty hex constant")
    try:
        return int(cleaned, 16)
    except ValueError as e:
        raise GroupParameterError(f"Malformed hex constant: {e}")


def load_group(p_hex: str = P1024_HEX, g: int = GENERATOR) -> GroupParameters:
    """
    Build GroupParameters from a safe-prime hex literal.

    The subgroup generated by g has order q = (p-1)/2 (the Sophie-Germain
    prime of p) because 2 is a quadratic residue modulo the fixed prime.

    Args:
        p_hex: safe prime modulus as hex
        g: generator

    Returns:
        GroupParameters

    Raises:
        GroupParameterError if p is malformed or too small for g
    """
    p = parse_hex_constant(p_hex)
    if p < 5 or p % 2 == 0:
        raise GroupParameterError(f"Modulus is not an odd prime candidate: {p}")
    if not 1 < g < p - 1:
        raise GroupParameterError(f"Generator {g} outside [2, p-2]")

    group = GroupParameters(p=p, g=g, q=(p - 1) // 2)
    logger.debug(f"Loaded {group.bits}-bit DH group (g={g})")
    return group


@lru_cache(maxsize=None)
def get_group_parameters() -> GroupParameters:
    """Return the process-wide fixed group, parsing the constants on first use."""
    return load_group()
