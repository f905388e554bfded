"""Shared fixtures for the DH test suites."""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from handshake.crypto.bignum import NativeBackend
from handshake.crypto.groups import get_group_parameters


class ScriptedBackend(NativeBackend):
    """Native engine that hands out pre-set (x, y) candidates first."""

    name = "scripted"

    def __init__(self, candidates=None, always=None):
        self.candidates = list(candidates or [])
        self.always = always
        self.calls = 0

    def generate_key(self, g, p, bits):
        self.calls += 1
        if self.always is not None:
            return self.always
        if self.candidates:
            return self.candidates.pop(0)
        return super().generate_key(g, p, bits)


@pytest.fixture
def group():
    return get_group_parameters()


@pytest.fixture
def scripted():
    """Factory for ScriptedBackend instances."""
    return ScriptedBackend
