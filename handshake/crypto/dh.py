"""
Diffie-Hellman key agreement over the fixed 1024-bit group.

Lifecycle of a context:
    ctx = dh_init(1024)
    dh_generate_key(ctx)
    our_public = dh_get_public_key(ctx, 128)      # send to peer
    secret = dh_compute_shared_secret(ctx, peer_public)
    dh_destroy(ctx)

A context is not thread-safe; callers serialize access to it. The group
parameters are immutable and shared by all contexts.
"""

import enum
import logging
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from handshake.common.config import load_settings
from handshake.common.utils import sha256_bytes
from handshake.crypto.bignum import (
    BigIntegerBackend,
    BigIntegerError,
    NativeBackend,
    get_backend,
)
from handshake.crypto.groups import (
    GroupParameterError,
    GroupParameters,
    get_group_parameters,
)

logger = logging.getLogger(__name__)

# Peer lengths at or above INT_MAX cannot be represented as a signed length
MAX_PEER_KEY_LENGTH = 2**31 - 1

_default_backend = NativeBackend()


class DHErrorKind(str, enum.Enum):
    """Why a DH operation failed."""
    ALLOCATION = "allocation"
    PARAMETER_PARSE = "parameter_parse"
    INVALID_PUBLIC_KEY = "invalid_public_key"
    LENGTH_OVERFLOW = "length_overflow"
    BYTE_PARSE = "byte_parse"
    NO_KEY_PAIR = "no_key_pair"
    BUFFER_TOO_SMALL = "buffer_too_small"
    RETRY_EXHAUSTED = "retry_exhausted"
    ENGINE_FAILURE = "engine_failure"
    INVALID_ARGUMENT = "invalid_argument"


class DHError(Exception):
    """Raised when a DH operation fails; `kind` tells callers why."""

    def __init__(self, kind: DHErrorKind, message: str):
        super().__init__(message)
        self.kind = kind

    def __str__(self):
        return f"[{self.kind.value}] {super().__str__()}"


class KeyPair(BaseModel):
    """Private exponent x and public value y = g^x mod p."""
    model_config = ConfigDict(frozen=True)

    private_exponent: int = Field(repr=False)
    public_value: int


class DHContext:
    """Group reference, declared key length and at most one key pair."""

    def __init__(self, group: GroupParameters, length: int,
                 backend: BigIntegerBackend, max_retries: int = 0):
        self.group = group
        self.length = length
        self.backend = backend
        self.max_retries = max_retries
        self.key_pair: Optional[KeyPair] = None

    @property
    def has_key_pair(self) -> bool:
        return self.key_pair is not None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        dh_destroy(self)
        return False

    def __repr__(self):
        return (
            f"DHContext(bits={self.length}, backend={self.backend.name}, "
            f"has_key_pair={self.has_key_pair})"
        )


def is_valid_public_key(y: int, p: int, q: Optional[int] = None,
                        backend: Optional[BigIntegerBackend] = None) -> bool:
    """
    RFC 2631, Section 2.1.5 public key validation.

    y must lie in [2, p-2]. When q is given, y^q mod p = 1 is also checked,
    but a mismatch is only logged: the check fails for about half of all
    otherwise well-formed values and must not reject a peer.

    Args:
        y: candidate public value
        p: group modulus
        q: optional subgroup order
        backend: engine for comparisons and modexp

    Returns:
        True if y passes the range checks
    """
    backend = backend or _default_backend

    if backend.compare(y, 2) < 0:
        logger.error("DH public key must be at least 2")
        return False

    if backend.compare(y, backend.sub_small(p, 2)) > 0:
        logger.error("DH public key must be at most p-2")
        return False

    if q is not None:
        if backend.compare(backend.modexp(y, q, p), 1) != 0:
            logger.warning("DH public key does not fulfill y^q mod p = 1")

    return True


def dh_init(key_bits: Optional[int] = None,
            backend: Union[str, BigIntegerBackend, None] = None,
            max_retries: Optional[int] = None) -> DHContext:
    """
    Create a context bound to the fixed group. No key pair exists yet.

    Args:
        key_bits: declared key length in bits (default: DH_KEY_BITS)
        backend: engine name or instance (default: DH_BACKEND)
        max_retries: key generation attempts before giving up, 0 = unbounded
            (default: DH_MAX_RETRIES)

    Returns:
        DHContext

    Raises:
        DHError (PARAMETER_PARSE, INVALID_ARGUMENT, ALLOCATION)
        ConfigError if defaults are taken from a malformed environment
    """
    if key_bits is None or backend is None or max_retries is None:
        settings = load_settings()
        key_bits = settings.key_bits if key_bits is None else key_bits
        backend = settings.backend if backend is None else backend
        max_retries = settings.max_retries if max_retries is None else max_retries

    if isinstance(key_bits, bool) or not isinstance(key_bits, int) or key_bits <= 0:
        raise DHError(DHErrorKind.INVALID_ARGUMENT, f"Invalid key length: {key_bits!r}")
    if max_retries < 0:
        raise DHError(DHErrorKind.INVALID_ARGUMENT, f"Invalid retry limit: {max_retries}")

    if isinstance(backend, str):
        try:
            backend = get_backend(backend)
        except BigIntegerError as e:
            raise DHError(DHErrorKind.INVALID_ARGUMENT, str(e)) from e

    try:
        group = get_group_parameters()
    except GroupParameterError as e:
        raise DHError(DHErrorKind.PARAMETER_PARSE, f"Failed to load DH group: {e}") from e

    try:
        ctx = DHContext(group, key_bits, backend, max_retries)
    except MemoryError as e:
        raise DHError(DHErrorKind.ALLOCATION, "Failed to allocate DH context") from e

    logger.debug(f"Initialized {ctx!r}")
    return ctx


def dh_generate_key(ctx: DHContext, max_retries: Optional[int] = None) -> KeyPair:
    """
    Generate a key pair whose public value passes validation.

    Invalid candidates are discarded and regenerated. Any earlier key pair
    in the context is dropped first.

    Args:
        ctx: context from dh_init
        max_retries: overrides ctx.max_retries (0 = unbounded)

    Returns:
        the KeyPair now stored in ctx

    Raises:
        DHError (INVALID_ARGUMENT, ENGINE_FAILURE, ALLOCATION, RETRY_EXHAUSTED)
    """
    if ctx is None:
        raise DHError(DHErrorKind.INVALID_ARGUMENT, "No DH context")

    limit = ctx.max_retries if max_retries is None else max_retries
    group = ctx.group
    ctx.key_pair = None

    attempts = 0
    while True:
        attempts += 1
        try:
            x, y = ctx.backend.generate_key(group.g, group.p, ctx.length)
        except BigIntegerError as e:
            raise DHError(DHErrorKind.ENGINE_FAILURE, f"Key generation failed: {e}") from e
        except MemoryError as e:
            raise DHError(DHErrorKind.ALLOCATION, "Out of memory during key generation") from e

        if is_valid_public_key(y, group.p, group.q, ctx.backend):
            ctx.key_pair = KeyPair(private_exponent=x, public_value=y)
            logger.debug(f"Generated DH key pair after {attempts} attempt(s)")
            return ctx.key_pair

        logger.warning(f"Discarding invalid DH key candidate (attempt {attempts})")
        del x, y

        if limit and attempts >= limit:
            logger.error(f"No valid DH key pair after {attempts} attempts")
            raise DHError(
                DHErrorKind.RETRY_EXHAUSTED,
                f"Key generation gave up after {attempts} invalid candidates",
            )


def _export(ctx: DHContext, value: int, length: int, what: str) -> bytes:
    if length <= 0:
        raise DHError(DHErrorKind.INVALID_ARGUMENT, f"Invalid buffer length: {length}")

    needed = ctx.backend.byte_length(value)
    if needed > length:
        raise DHError(
            DHErrorKind.BUFFER_TOO_SMALL,
            f"{what} needs {needed} bytes, buffer has {length}",
        )
    return ctx.backend.to_bytes(value, length)


def dh_get_public_key(ctx: DHContext, length: Optional[int] = None) -> bytes:
    """
    Export the public value big-endian, zero-padded on the left:
        00 00 00 00 00 y1 y2 y3 ...

    Args:
        ctx: context with a generated key pair
        length: output width in bytes (default: group width)

    Returns:
        exactly `length` bytes

    Raises:
        DHError (NO_KEY_PAIR, BUFFER_TOO_SMALL, INVALID_ARGUMENT)
    """
    if ctx is None or not ctx.has_key_pair:
        raise DHError(DHErrorKind.NO_KEY_PAIR, "DH key pair not generated")
    if length is None:
        length = ctx.group.byte_length
    return _export(ctx, ctx.key_pair.public_value, length, "Public key")


def dh_get_private_key(ctx: DHContext, length: Optional[int] = None) -> bytes:
    """Export the private exponent with the same fixed-width layout as the public key."""
    if ctx is None or not ctx.has_key_pair:
        raise DHError(DHErrorKind.NO_KEY_PAIR, "DH key pair not generated")
    if length is None:
        length = ctx.group.byte_length
    return _export(ctx, ctx.key_pair.private_exponent, length, "Private key")


def dh_compute_shared_secret(ctx: DHContext, peer_public: bytes,
                             peer_key_length: Optional[int] = None) -> bytes:
    """
    Compute (peer y)^x mod p from the peer's big-endian public value.

    The secret is written with the same fixed-width layout as
    dh_get_public_key and is exactly `peer_key_length` bytes wide.

    Args:
        ctx: context with a generated key pair
        peer_public: peer's public value bytes
        peer_key_length: number of bytes to use (default: len(peer_public))

    Returns:
        shared secret, `peer_key_length` bytes

    Raises:
        DHError (INVALID_ARGUMENT, LENGTH_OVERFLOW, NO_KEY_PAIR, BYTE_PARSE,
        INVALID_PUBLIC_KEY, ENGINE_FAILURE, BUFFER_TOO_SMALL)
    """
    if ctx is None or peer_public is None:
        raise DHError(DHErrorKind.INVALID_ARGUMENT, "Missing DH context or peer key")

    if peer_key_length is None:
        peer_key_length = len(peer_public)
    if peer_key_length >= MAX_PEER_KEY_LENGTH:
        raise DHError(
            DHErrorKind.LENGTH_OVERFLOW,
            f"Peer key length {peer_key_length} exceeds {MAX_PEER_KEY_LENGTH - 1}",
        )
    if peer_key_length < 0:
        raise DHError(DHErrorKind.INVALID_ARGUMENT, f"Invalid peer key length: {peer_key_length}")

    if not ctx.has_key_pair:
        raise DHError(DHErrorKind.NO_KEY_PAIR, "DH key pair not generated")

    backend = ctx.backend
    group = ctx.group

    try:
        peer_y = backend.from_bytes(peer_public, peer_key_length)
    except BigIntegerError as e:
        raise DHError(DHErrorKind.BYTE_PARSE, f"Cannot parse peer public key: {e}") from e

    if not is_valid_public_key(peer_y, group.p, group.q, backend):
        raise DHError(DHErrorKind.INVALID_PUBLIC_KEY, "Peer public key rejected")

    try:
        secret = backend.compute_key(peer_y, ctx.key_pair.private_exponent, group.p, group.g)
    except BigIntegerError as e:
        raise DHError(DHErrorKind.ENGINE_FAILURE, f"Shared secret computation failed: {e}") from e

    return _export(ctx, secret, peer_key_length, "Shared secret")


def dh_destroy(ctx: Optional[DHContext]) -> None:
    """Drop the context's key pair. The shared group parameters stay loaded."""
    if ctx is None:
        return
    ctx.key_pair = None
    logger.debug("Destroyed DH context key pair")


def derive_session_key(shared_secret: bytes, length: int = 16) -> bytes:
    """
    Derive symmetric key material from a fixed-width shared secret.

    K = Trunc_length(SHA256(secret))

    Args:
        shared_secret: output of dh_compute_shared_secret
        length: key size in bytes, 1..32 (default 16 for AES-128)

    Returns:
        `length`-byte key
    """
    if not 1 <= length <= 32:
        raise DHError(DHErrorKind.INVALID_ARGUMENT, f"Session key length must be 1..32, got {length}")
    return sha256_bytes(bytes(shared_secret))[:length]
