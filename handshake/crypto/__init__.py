"""Cryptographic core: fixed DH group, big-integer engines, key agreement."""

from .groups import GroupParameters, GroupParameterError, get_group_parameters, load_group
from .bignum import BigIntegerBackend, BigIntegerError, NativeBackend, PycaBackend, get_backend
from .dh import (
    DHContext,
    DHError,
    DHErrorKind,
    KeyPair,
    is_valid_public_key,
    dh_init,
    dh_generate_key,
    dh_get_public_key,
    dh_get_private_key,
    dh_compute_shared_secret,
    dh_destroy,
    derive_session_key,
)

__all__ = [
    "GroupParameters",
    "GroupParameterError",
    "get_group_parameters",
    "load_group",
    "BigIntegerBackend",
    "BigIntegerError",
    "NativeBackend",
    "PycaBackend",
    "get_backend",
    "DHContext",
    "DHError",
    "DHErrorKind",
    "KeyPair",
    "is_valid_public_key",
    "dh_init",
    "dh_generate_key",
    "dh_get_public_key",
    "dh_get_private_key",
    "dh_compute_shared_secret",
    "dh_destroy",
    "derive_session_key",
]
