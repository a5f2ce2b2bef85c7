"""Unit tests for envelope state detection and transitions."""

import os

import pytest

from envelope.errors import (
    AlreadyInitializedError,
    AlreadyLockedError,
    AlreadyUnlockedError,
    DecryptionFailedError,
    EmptyPasswordError,
    InvalidEnvelopeError,
    NotInitializedError,
    PasswordMismatchError,
    StillLockedError,
)
from envelope.storage import state
from envelope.storage.state import AbsentEnvelope, LockedEnvelope, UnlockedEnvelope, detect_state
from envelope.storage.vault import atomic_write
from envelope.utils.dataModels import VAULT_HDR_SIZE, VAULT_MAGIC
from envelope.utils.helper import envelope_paths


def seeded(paths):
    envelope = state.init(paths)
    envelope.open().insert("dev", "A", "1")
    envelope.close()


class TestDetectState:
    def test_missing_file_is_absent(self, paths):
        assert isinstance(detect_state(paths), AbsentEnvelope)

    def test_empty_file_is_absent(self, paths):
        paths["envelope"].write_bytes(b"")
        assert isinstance(detect_state(paths), AbsentEnvelope)

    def test_sqlite_file_is_unlocked(self, paths):
        state.init(paths).close()
        assert isinstance(detect_state(paths), UnlockedEnvelope)

    def test_sealed_file_is_locked(self, paths):
        seeded(paths)
        state.lock(paths, "pw", "pw")
        envelope = detect_state(paths)
        assert isinstance(envelope, LockedEnvelope)
        assert envelope.header.magic == VAULT_MAGIC

    def test_short_file_with_magic_is_invalid(self, paths):
        """
        Given a file starting with the magic but shorter than a header
        When its state is detected
        Then InvalidEnvelopeError is raised
        """
        paths["envelope"].write_bytes(VAULT_MAGIC + b"\x01")
        with pytest.raises(InvalidEnvelopeError):
            detect_state(paths)

    def test_foreign_file_is_invalid(self, paths):
        paths["envelope"].write_bytes(b"KEY=value\n")
        with pytest.raises(InvalidEnvelopeError):
            detect_state(paths)


class TestTransitions:
    def test_init_creates_store(self, paths):
        envelope = state.init(paths)
        assert isinstance(envelope, UnlockedEnvelope)
        envelope.close()
        assert paths["envelope"].exists()

    def test_init_twice_fails(self, paths):
        state.init(paths).close()
        with pytest.raises(AlreadyInitializedError):
            state.init(paths)

    def test_lock_unlock_round_trip(self, paths):
        """
        Given a store with one variable
        When it is locked and unlocked with the same password
        Then the file is byte-identical and the variable is readable
        """
        seeded(paths)
        before = paths["envelope"].read_bytes()

        state.lock(paths, "pw", "pw")
        locked = paths["envelope"].read_bytes()
        assert locked.startswith(VAULT_MAGIC)
        assert b"SQLite format 3" not in locked[:VAULT_HDR_SIZE]

        state.unlock(paths, "pw")
        assert paths["envelope"].read_bytes() == before
        with state.open_store(paths) as db:
            assert [(v.key, v.value) for v in db.list_active("dev")] == [("A", "1")]

    def test_lock_closes_open_handle(self, paths):
        envelope = state.init(paths)
        envelope.open().insert("dev", "A", "1")
        envelope.lock("pw", "pw")
        assert envelope.db is None
        state.unlock(paths, "pw")
        with state.open_store(paths) as db:
            assert db.env_exists("dev")

    def test_wrong_password_leaves_file_untouched(self, paths):
        seeded(paths)
        state.lock(paths, "pw", "pw")
        locked = paths["envelope"].read_bytes()

        with pytest.raises(DecryptionFailedError):
            state.unlock(paths, "nope")
        assert paths["envelope"].read_bytes() == locked
        assert not paths["tmp"].exists()

    def test_unlocked_envelope_is_consumed(self, paths):
        seeded(paths)
        state.lock(paths, "pw", "pw")
        envelope = state.require_locked(paths)
        envelope.unlock("pw")
        assert envelope.header is None
        with pytest.raises(AlreadyUnlockedError):
            envelope.unlock("pw")

    @pytest.mark.parametrize(
        "password, confirm, error",
        [("", "", EmptyPasswordError), ("a", "b", PasswordMismatchError)],
    )
    def test_lock_checks_passwords(self, paths, password, confirm, error):
        seeded(paths)
        before = paths["envelope"].read_bytes()
        with pytest.raises(error):
            state.lock(paths, password, confirm)
        assert paths["envelope"].read_bytes() == before


class TestPreconditions:
    def test_absent(self, paths):
        with pytest.raises(NotInitializedError):
            state.open_store(paths)
        with pytest.raises(NotInitializedError):
            state.lock(paths, "pw", "pw")
        with pytest.raises(NotInitializedError):
            state.unlock(paths, "pw")

    def test_locked(self, paths):
        seeded(paths)
        state.lock(paths, "pw", "pw")
        with pytest.raises(StillLockedError):
            state.open_store(paths)
        with pytest.raises(AlreadyLockedError):
            state.lock(paths, "pw", "pw")
        with pytest.raises(AlreadyInitializedError):
            state.init(paths)

    def test_unlocked(self, paths):
        seeded(paths)
        with pytest.raises(AlreadyUnlockedError):
            state.unlock(paths, "pw")


class TestAtomicWrite:
    def test_replaces_file(self, tmp_path):
        target = tmp_path / "f"
        target.write_bytes(b"old")
        atomic_write(target, (b"new", b"er"))
        assert target.read_bytes() == b"newer"
        assert not (tmp_path / "f.tmp").exists()

    def test_failure_keeps_original(self, tmp_path):
        """
        Given a write that fails half way through
        When atomic_write gives up
        Then the original file is untouched and the temp file is gone
        """
        target = tmp_path / "f"
        target.write_bytes(b"old")

        def chunks():
            yield b"partial"
            raise OSError("disk full")

        with pytest.raises(OSError, match="disk full"):
            atomic_write(target, chunks())
        assert target.read_bytes() == b"old"
        assert not (tmp_path / "f.tmp").exists()

    def test_fsync_failure_does_not_rename(self, tmp_path, monkeypatch):
        target = tmp_path / "f"
        target.write_bytes(b"old")

        def failing_fsync(_fd):
            raise OSError("fsync failed")

        monkeypatch.setattr(os, "fsync", failing_fsync)
        with pytest.raises(OSError):
            atomic_write(target, (b"new",))
        assert target.read_bytes() == b"old"


class TestEnvelopePaths:
    def test_default_location(self, tmp_path):
        p = envelope_paths(tmp_path, environ={})
        assert p["envelope"] == tmp_path / ".envelope"
        assert p["tmp"] == tmp_path / ".envelope.tmp"
        assert p["editmsg"] == tmp_path / ".ENVELOPE_EDITMSG"

    def test_override(self, tmp_path):
        store = tmp_path / "elsewhere" / "vars.db"
        p = envelope_paths(tmp_path, environ={"ENVELOPE_PATH": str(store)})
        assert p["envelope"] == store
        assert p["tmp"] == store.with_name("vars.db.tmp")
        assert p["editmsg"] == tmp_path / ".ENVELOPE_EDITMSG"
