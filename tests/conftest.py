"""Shared fixtures: targets for each dialect and a demangler that needs no tools."""
import pytest

from cargobolt.parsing.rust_demangle import strip_hash
from cargobolt.utils.target import TargetInfo

LINUX = "x86_64-unknown-linux-gnu"
MACOS = "aarch64-apple-darwin"
WINDOWS = "x86_64-pc-windows-msvc"


class StubDemangler:
    """
    Maps mangled names through a fixed table; unknown names pass through
    with the hash suffix stripped, like the real demangler does.
    """

    def __init__(self, mapping=None):
        self.mapping = dict(mapping or {})
        self.batches = []

    def demangle(self, name):
        if name in self.mapping:
            return self.mapping[name]
        return strip_hash(name)

    def demangle_many(self, names):
        names = list(names)
        self.batches.append(names)
        return [self.demangle(n) for n in names]

    __call__ = demangle


@pytest.fixture
def linux():
    return TargetInfo(LINUX)


@pytest.fixture
def macos():
    return TargetInfo(MACOS)


@pytest.fixture
def windows():
    return TargetInfo(WINDOWS)


@pytest.fixture
def stub_demangler():
    return StubDemangler()
