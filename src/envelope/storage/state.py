"""
Envelope state machine.

The store file is in exactly one of three states, read off its first bytes:

    Absent    no file (or an empty one)
    Unlocked  a plain SQLite database ("SQLite format 3\\0")
    Locked    VAULT_MAGIC header (53 bytes) followed by XChaCha20-Poly1305 ciphertext

    init    Absent   -> Unlocked
    lock    Unlocked -> Locked
    unlock  Locked   -> Unlocked

Any other byte pattern is InvalidEnvelopeError. Both lock and unlock replace
the file through storage.vault.atomic_write.
"""
import logging

from pathlib import Path
from typing import Dict, Optional, Union

from envelope.crypto.aead import decrypt, encrypt
from envelope.errors import (
    AlreadyInitializedError,
    AlreadyLockedError,
    AlreadyUnlockedError,
    InvalidEnvelopeError,
    NotInitializedError,
    StillLockedError,
    WrongHeaderSizeError,
    WrongMagicNumberError,
)
from envelope.storage.db import EnvelopeDb
from envelope.storage.vault import atomic_write, load_vault, save_vault
from envelope.utils.dataModels import EnvelopeFileHeader, SQLITE_MAGIC, VAULT_HDR_SIZE, VAULT_MAGIC
from envelope.utils.helper import check_passwords

logger = logging.getLogger("envelope.vault")


def _as_bytes(password: Union[str, bytes]) -> bytes:
    return password.encode("utf-8") if isinstance(password, str) else bytes(password)


class AbsentEnvelope:
    def __init__(self, paths: Dict[str, Path]):
        self.paths = paths

    def init(self) -> "UnlockedEnvelope":
        db = EnvelopeDb(self.paths["envelope"], create=True)
        logger.debug("initialized %s", self.paths["envelope"])
        return UnlockedEnvelope(self.paths, db)


class LockedEnvelope:
    """An encrypted envelope. unlock() consumes it."""

    def __init__(self, paths: Dict[str, Path], header: EnvelopeFileHeader, ciphertext: bytes):
        self.paths = paths
        self.header = header
        self.ciphertext = ciphertext

    def unlock(self, password: Union[str, bytes]) -> "UnlockedEnvelope":
        if self.header is None:
            raise AlreadyUnlockedError()
        plaintext = decrypt(self.ciphertext, self.header, _as_bytes(password))
        atomic_write(self.paths["envelope"], (plaintext,), self.paths["tmp"])
        self.header.wipe()
        self.header = None
        self.ciphertext = b""
        logger.debug("unlocked %s", self.paths["envelope"])
        return UnlockedEnvelope(self.paths)


class UnlockedEnvelope:
    """A plain database on disk, optionally with an open handle."""

    def __init__(self, paths: Dict[str, Path], db: Optional[EnvelopeDb] = None):
        self.paths = paths
        self.db = db

    def open(self) -> EnvelopeDb:
        if self.db is None:
            self.db = EnvelopeDb(self.paths["envelope"])
        return self.db

    def close(self) -> None:
        if self.db is not None:
            self.db.close()
            self.db = None

    def lock(self, password: Union[str, bytes], confirm: Union[str, bytes]) -> LockedEnvelope:
        check_passwords(password, confirm)
        # Every write has to be on disk before the plaintext is read back.
        self.close()
        path = self.paths["envelope"]
        plaintext = path.read_bytes()
        header = EnvelopeFileHeader()
        ciphertext = encrypt(plaintext, _as_bytes(password), header)
        save_vault(path, header, ciphertext, self.paths["tmp"])
        logger.debug("locked %s", path)
        return LockedEnvelope(self.paths, header, ciphertext)


EnvelopeState = Union[AbsentEnvelope, LockedEnvelope, UnlockedEnvelope]


def detect_state(paths: Dict[str, Path]) -> EnvelopeState:
    path = paths["envelope"]
    if not path.exists():
        return AbsentEnvelope(paths)
    with path.open("rb") as f:
        head = f.read(VAULT_HDR_SIZE)
    if not head:
        return AbsentEnvelope(paths)
    if head.startswith(VAULT_MAGIC):
        try:
            header, ciphertext = load_vault(path)
        except (WrongHeaderSizeError, WrongMagicNumberError) as e:
            raise InvalidEnvelopeError(str(e)) from e
        return LockedEnvelope(paths, header, ciphertext)
    if head.startswith(SQLITE_MAGIC):
        return UnlockedEnvelope(paths)
    raise InvalidEnvelopeError()


def require_absent(paths: Dict[str, Path]) -> AbsentEnvelope:
    envelope = detect_state(paths)
    if not isinstance(envelope, AbsentEnvelope):
        raise AlreadyInitializedError(str(paths["envelope"]))
    return envelope


def require_locked(paths: Dict[str, Path]) -> LockedEnvelope:
    envelope = detect_state(paths)
    if isinstance(envelope, AbsentEnvelope):
        raise NotInitializedError()
    if isinstance(envelope, UnlockedEnvelope):
        raise AlreadyUnlockedError()
    return envelope


def require_unlocked(paths: Dict[str, Path], locked_error=StillLockedError) -> UnlockedEnvelope:
    envelope = detect_state(paths)
    if isinstance(envelope, AbsentEnvelope):
        raise NotInitializedError()
    if isinstance(envelope, LockedEnvelope):
        raise locked_error()
    return envelope


def init(paths: Dict[str, Path]) -> UnlockedEnvelope:
    return require_absent(paths).init()


def unlock(paths: Dict[str, Path], password: Union[str, bytes]) -> UnlockedEnvelope:
    return require_locked(paths).unlock(password)


def lock(paths: Dict[str, Path], password: Union[str, bytes], confirm: Union[str, bytes]) -> LockedEnvelope:
    return require_unlocked(paths, AlreadyLockedError).lock(password, confirm)


def open_store(paths: Dict[str, Path]) -> EnvelopeDb:
    """Open the database of an unlocked envelope; locked or missing envelopes are errors."""
    return require_unlocked(paths).open()
