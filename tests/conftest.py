"""Shared fixtures: cheap Argon2 parameters, a controllable clock, store files."""

from pathlib import Path

import pytest

from envelope.crypto.hash import KdfParams
from envelope.storage.db import EnvelopeDb
from envelope.utils.helper import envelope_paths


class FakeClock:
    def __init__(self, start: int = 1_700_000_000):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: int = 1) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def fast_kdf(monkeypatch):
    monkeypatch.setattr("envelope.crypto.hash.KDF_PARAMS", KdfParams(1, 8, 1))


@pytest.fixture(autouse=True)
def no_store_override(monkeypatch):
    monkeypatch.delenv("ENVELOPE_PATH", raising=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db(clock):
    store = EnvelopeDb(":memory:", clock=clock)
    yield store
    store.close()


@pytest.fixture
def paths(tmp_path: Path) -> dict:
    return envelope_paths(tmp_path, environ={})
