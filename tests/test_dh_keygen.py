"""
Context, Key Generation and Export Tests

Test Cases:
1. dh_init binds the shared group and creates no key pair
2. Generated public values satisfy 2 <= y <= p-2
3. Invalid candidates are discarded and regenerated
4. Retry ceiling raises RETRY_EXHAUSTED
5. Export before generation fails with NO_KEY_PAIR
6. Export pads on the left and rejects short buffers
7. dh_destroy drops the key pair but not the group
"""

import os
import sys
import logging

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from handshake.crypto import dh
from handshake.crypto.dh import DHError, DHErrorKind
from handshake.crypto.groups import GroupParameterError, get_group_parameters


def test_init(group):
    ctx = dh.dh_init(1024, "native", 16)
    assert ctx.group is group
    assert ctx.length == 1024
    assert ctx.backend.name == "native"
    assert not ctx.has_key_pair


def test_contexts_share_group():
    a = dh.dh_init(1024, "native", 16)
    b = dh.dh_init(512, "pyca", 16)
    assert a.group is b.group


@pytest.mark.parametrize("bits", [0, -1, "1024", 1.5, True])
def test_init_rejects_bad_length(bits):
    with pytest.raises(DHError) as exc:
        dh.dh_init(bits, "native", 16)
    assert exc.value.kind is DHErrorKind.INVALID_ARGUMENT


def test_init_rejects_unknown_backend():
    with pytest.raises(DHError) as exc:
        dh.dh_init(1024, "gmp", 16)
    assert exc.value.kind is DHErrorKind.INVALID_ARGUMENT


def test_init_parameter_parse_failure(monkeypatch):
    def broken():
        raise GroupParameterError("Malformed hex constant")

    monkeypatch.setattr(dh, "get_group_parameters", broken)
    with pytest.raises(DHError) as exc:
        dh.dh_init(1024, "native", 16)
    assert exc.value.kind is DHErrorKind.PARAMETER_PARSE


@pytest.mark.parametrize("backend", ["native", "pyca"])
def test_generated_key_in_range(backend, group):
    ctx = dh.dh_init(1024, backend, 16)
    for _ in range(3):
        pair = dh.dh_generate_key(ctx)
        assert 2 <= pair.public_value <= group.p - 2
        assert pair.public_value == pow(group.g, pair.private_exponent, group.p)
        assert ctx.key_pair is pair


def test_private_exponent_hidden_from_repr():
    ctx = dh.dh_init(1024, "native", 16)
    pair = dh.dh_generate_key(ctx)
    assert str(pair.private_exponent) not in repr(pair)


def test_retries_invalid_candidates(scripted, caplog):
    backend = scripted(candidates=[(0, 1), (0, 1), (1, 2)])
    ctx = dh.dh_init(1024, backend, 0)
    with caplog.at_level(logging.WARNING, logger="handshake.crypto.dh"):
        pair = dh.dh_generate_key(ctx)
    assert backend.calls == 3
    assert pair.private_exponent == 1
    assert pair.public_value == 2
    assert "attempt 2" in caplog.text


def test_retry_ceiling(scripted):
    backend = scripted(always=(0, 1))
    ctx = dh.dh_init(1024, backend, 5)
    with pytest.raises(DHError) as exc:
        dh.dh_generate_key(ctx)
    assert exc.value.kind is DHErrorKind.RETRY_EXHAUSTED
    assert backend.calls == 5
    assert not ctx.has_key_pair


def test_retry_ceiling_override(scripted):
    backend = scripted(always=(0, 1))
    ctx = dh.dh_init(1024, backend, 50)
    with pytest.raises(DHError):
        dh.dh_generate_key(ctx, max_retries=2)
    assert backend.calls == 2


def test_regeneration_replaces_pair(scripted):
    ctx = dh.dh_init(1024, scripted(candidates=[(1, 2), (2, 4)]), 16)
    first = dh.dh_generate_key(ctx)
    second = dh.dh_generate_key(ctx)
    assert first.public_value == 2
    assert second.public_value == 4
    assert ctx.key_pair is second


def test_export_before_generation():
    ctx = dh.dh_init(1024, "native", 16)
    with pytest.raises(DHError) as exc:
        dh.dh_get_public_key(ctx, 128)
    assert exc.value.kind is DHErrorKind.NO_KEY_PAIR


def test_export_default_width():
    ctx = dh.dh_init(1024, "native", 16)
    pair = dh.dh_generate_key(ctx)
    out = dh.dh_get_public_key(ctx)
    assert len(out) == 128
    assert int.from_bytes(out, "big") == pair.public_value


def test_export_pads_left(scripted):
    ctx = dh.dh_init(1024, scripted(candidates=[(5, 32)]), 16)
    dh.dh_generate_key(ctx)
    assert dh.dh_get_public_key(ctx, 4) == b"\x00\x00\x00\x20"


def test_export_larger_buffer():
    ctx = dh.dh_init(1024, "native", 16)
    y = dh.dh_generate_key(ctx).public_value
    natural = (y.bit_length() + 7) // 8
    out = dh.dh_get_public_key(ctx, 200)
    assert len(out) == 200
    assert out[:200 - natural] == bytes(200 - natural)
    assert out[200 - natural:] == y.to_bytes(natural, "big")


def test_export_short_buffer():
    ctx = dh.dh_init(1024, "native", 16)
    y = dh.dh_generate_key(ctx).public_value
    natural = (y.bit_length() + 7) // 8
    with pytest.raises(DHError) as exc:
        dh.dh_get_public_key(ctx, natural - 1)
    assert exc.value.kind is DHErrorKind.BUFFER_TOO_SMALL


def test_export_zero_length(scripted):
    ctx = dh.dh_init(1024, scripted(candidates=[(1, 2)]), 16)
    dh.dh_generate_key(ctx)
    with pytest.raises(DHError) as exc:
        dh.dh_get_public_key(ctx, 0)
    assert exc.value.kind is DHErrorKind.INVALID_ARGUMENT


def test_private_key_export(scripted):
    ctx = dh.dh_init(1024, scripted(candidates=[(0x0203, pow(2, 0x0203, get_group_parameters().p))]), 16)
    dh.dh_generate_key(ctx)
    assert dh.dh_get_private_key(ctx, 3) == b"\x00\x02\x03"


def test_destroy():
    ctx = dh.dh_init(1024, "native", 16)
    dh.dh_generate_key(ctx)
    dh.dh_destroy(ctx)
    assert not ctx.has_key_pair
    assert ctx.group is get_group_parameters()
    with pytest.raises(DHError) as exc:
        dh.dh_get_public_key(ctx, 128)
    assert exc.value.kind is DHErrorKind.NO_KEY_PAIR
    dh.dh_destroy(None)


def test_context_manager_destroys():
    with dh.dh_init(1024, "native", 16) as ctx:
        dh.dh_generate_key(ctx)
        assert ctx.has_key_pair
    assert not ctx.has_key_pair
