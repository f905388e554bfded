"""
Big-integer engines behind the DH code.

The DH module is written only against BigIntegerBackend; two engines are
shipped: plain Python integers (NativeBackend) and PyCA/OpenSSL
(PycaBackend). Neither promises constant-time exponentiation.
"""

import secrets
import logging
from abc import ABC, abstractmethod
from typing import Dict, Tuple

from cryptography.hazmat.primitives.asymmetric import dh

logger = logging.getLogger(__name__)


class BigIntegerError(Exception):
    """Raised when an engine cannot parse, serialize or compute a value."""
    pass


class BigIntegerBackend(ABC):
    """Capability contract a big-integer engine provides to the DH code."""

    name = "abstract"

    def from_hex(self, hex_str: str) -> int:
        """Parse a big-endian hex string."""
        try:
            return int("".join(hex_str.split()), 16)
        except ValueError as e:
            raise BigIntegerError(f"Invalid hex integer: {e}")

    def from_bytes(self, data: bytes, length: int) -> int:
        """Parse the first `length` bytes of data as an unsigned big-endian integer."""
        if length < 0 or len(data) < length:
            raise BigIntegerError(
                f"Need {length} bytes to parse integer, got {len(data)}"
            )
        return int.from_bytes(bytes(data[:length]), byteorder='big')

    def to_bytes(self, value: int, length: int) -> bytes:
        """
        Serialize value into exactly `length` bytes, big-endian,
        right-aligned and zero-padded on the left.

        Raises:
            BigIntegerError if value is negative or needs more than length bytes
        """
        if value < 0:
            raise BigIntegerError("Cannot serialize a negative integer")
        if self.byte_length(value) > length:
            raise BigIntegerError(
                f"Integer needs {self.byte_length(value)} bytes, buffer has {length}"
            )
        return value.to_bytes(length, byteorder='big')

    def byte_length(self, value: int) -> int:
        return (value.bit_length() + 7) // 8

    def compare(self, a: int, b: int) -> int:
        return (a > b) - (a < b)

    def sub_small(self, value: int, word: int) -> int:
        return value - word

    @abstractmethod
    def modexp(self, base: int, exponent: int, modulus: int) -> int:
        """Compute base^exponent mod modulus."""

    @abstractmethod
    def generate_key(self, g: int, p: int, bits: int) -> Tuple[int, int]:
        """Produce a fresh (x, g^x mod p) candidate pair. Not validated."""

    @abstractmethod
    def compute_key(self, peer_public: int, private: int, p: int, g: int) -> int:
        """Compute peer_public^private mod p."""


class NativeBackend(BigIntegerBackend):
    """Python int arithmetic with exponents drawn from `secrets`."""

    name = "native"

    def modexp(self, base: int, exponent: int, modulus: int) -> int:
        if modulus <= 0:
            raise BigIntegerError("Modulus must be positive")
        return pow(base, exponent, modulus)

    def generate_key(self, g: int, p: int, bits: int) -> Tuple[int, int]:
        # Exponent never wider than the group order (p-1)/2
        exp_bits = max(1, min(bits, (p - 1).bit_length() - 1))
        private = secrets.randbits(exp_bits)
        return private, pow(g, private, p)

    def compute_key(self, peer_public: int, private: int, p: int, g: int) -> int:
        return self.modexp(peer_public, private, p)


class PycaBackend(BigIntegerBackend):
    """OpenSSL arithmetic through cryptography's DH primitives."""

    name = "pyca"

    def __init__(self):
        self._params: Dict[Tuple[int, int], dh.DHParameterNumbers] = {}

    def _parameter_numbers(self, p: int, g: int) -> dh.DHParameterNumbers:
        key = (p, g)
        if key not in self._params:
            try:
                self._params[key] = dh.DHParameterNumbers(p, g)
            except (TypeError, ValueError) as e:
                raise BigIntegerError(f"Unsupported DH parameters: {e}")
        return self._params[key]

    def modexp(self, base: int, exponent: int, modulus: int) -> int:
        # PyCA exposes no raw modexp; it is only needed for the subgroup check
        if modulus <= 0:
            raise BigIntegerError("Modulus must be positive")
        return pow(base, exponent, modulus)

    def generate_key(self, g: int, p: int, bits: int) -> Tuple[int, int]:
        pn = self._parameter_numbers(p, g)
        try:
            private_key = pn.parameters().generate_private_key()
        except ValueError as e:
            raise BigIntegerError(f"Key generation failed: {e}")
        x = private_key.private_numbers().x
        y = private_key.public_key().public_numbers().y
        return x, y

    def compute_key(self, peer_public: int, private: int, p: int, g: int) -> int:
        pn = self._parameter_numbers(p, g)
        try:
            own_public = dh.DHPublicNumbers(pow(g, private, p), pn)
            private_key = dh.DHPrivateNumbers(private, own_public).private_key()
            peer_key = dh.DHPublicNumbers(peer_public, pn).public_key()
            shared = private_key.exchange(peer_key)
        except ValueError as e:
            raise BigIntegerError(f"Key exchange failed: {e}")
        return int.from_bytes(shared, byteorder='big')


BACKENDS = {
    NativeBackend.name: NativeBackend,
    PycaBackend.name: PycaBackend,
}


def get_backend(name: str = "native") -> BigIntegerBackend:
    """
    Instantiate a big-integer engine by name.

    Raises:
        BigIntegerError for unknown names
    """
    try:
        backend_cls = BACKENDS[name.lower()]
    except KeyError:
        raise BigIntegerError(
            f"Unknown big-integer backend '{name}' (choose from {', '.join(BACKENDS)})"
        )
    logger.debug(f"Using {backend_cls.name} big-integer backend")
    return backend_cls()
