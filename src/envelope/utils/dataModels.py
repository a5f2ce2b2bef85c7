import struct

from dataclasses import dataclass, field
from typing import Optional, Union

from envelope.errors import WrongHeaderSizeError, WrongMagicNumberError

# Argon2id cost (OWASP / RFC 9106 second recommended option, scaled up)
DEFAULT_T_COST = 3
DEFAULT_M_COST_KiB = 262144  # 256 MiB
DEFAULT_PARALLELISM = 8
KEY_LEN = 32  # XChaCha20-Poly1305 key

# First 4 bytes are SHA256("envelope")[0:4], the rest is readable in hex dumps.
VAULT_MAGIC = b"\x4c\x50\x3c\xa6ENVELOPE"
VAULT_VERSION = 1
SALT_SIZE = 16
NONCE_SIZE = 24
VAULT_HDR_FMT = ">12sB16s24s"  # magic, ver, salt(16), nonce(24)
VAULT_HDR_SIZE = struct.calcsize(VAULT_HDR_FMT)  # 53

# https://www.sqlite.org/fileformat.html
SQLITE_MAGIC = b"SQLite format 3\x00"

COMMENT_MARKER = "#"


@dataclass
class EnvelopeFileHeader:
    """Fixed-size header written in front of the ciphertext of a locked envelope."""

    magic: bytes = VAULT_MAGIC
    version: int = VAULT_VERSION
    salt: bytearray = field(default_factory=lambda: bytearray(SALT_SIZE))
    nonce: bytearray = field(default_factory=lambda: bytearray(NONCE_SIZE))

    def to_bytes(self) -> bytes:
        return struct.pack(VAULT_HDR_FMT, bytes(self.magic), self.version, bytes(self.salt), bytes(self.nonce))

    @staticmethod
    def from_bytes(b: bytes) -> "EnvelopeFileHeader":
        if len(b) != VAULT_HDR_SIZE:
            raise WrongHeaderSizeError(f"expected {VAULT_HDR_SIZE} bytes, got {len(b)}")
        magic, ver, salt, nonce = struct.unpack(VAULT_HDR_FMT, b)
        if magic != VAULT_MAGIC:
            raise WrongMagicNumberError()
        return EnvelopeFileHeader(magic=magic, version=ver, salt=bytearray(salt), nonce=bytearray(nonce))

    def associated_data(self) -> bytes:
        """magic || version, authenticated alongside the ciphertext."""
        return bytes(self.magic) + bytes([self.version])

    def wipe(self) -> None:
        for buf in (getattr(self, "salt", None), getattr(self, "nonce", None)):
            if isinstance(buf, bytearray):
                buf[:] = bytes(len(buf))

    def __del__(self):
        self.wipe()


@dataclass(frozen=True)
class VariableEvent:
    """One row of the append-only log. value=None marks the key inactive."""

    env: str
    key: str
    value: Optional[str]
    created_at: int

    @property
    def active(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class ActiveVariable:
    env: str
    key: str
    value: str
    created_at: int


@dataclass(frozen=True)
class InOnlyFirst:
    key: str
    value: str


@dataclass(frozen=True)
class InOnlySecond:
    key: str
    value: str


@dataclass(frozen=True)
class Changed:
    key: str
    first: str
    second: str


DiffEntry = Union[InOnlyFirst, InOnlySecond, Changed]
