"""
Envelope error taxonomy.

Every failure the user can trigger is an EnvelopeError subclass carrying a
short stable code. The CLI prints the message and exits with status 1.
"""

from typing import Optional

__all__ = [
    "EnvelopeError",
    "WrongHeaderSizeError",
    "WrongMagicNumberError",
    "InvalidEnvelopeError",
    "KeyDerivationError",
    "DecryptionFailedError",
    "UnsupportedVersionError",
    "NotInitializedError",
    "AlreadyInitializedError",
    "StillLockedError",
    "AlreadyLockedError",
    "AlreadyUnlockedError",
    "EmptyPasswordError",
    "PasswordMismatchError",
    "StoreError",
    "NotFoundError",
    "AlreadyExistsError",
    "InvalidKeyError",
    "InvalidArgumentError",
    "ExternalCommandError",
]


class EnvelopeError(Exception):
    """Base class for all envelope errors."""

    code = "E000"
    message = "envelope error"

    def __init__(self, context: Optional[str] = None):
        self.context = context
        full_msg = self.message
        if context:
            full_msg += f": {context}"
        super().__init__(full_msg)


# Format errors (E1xx)
class WrongHeaderSizeError(EnvelopeError):
    code = "E100"
    message = "wrong header size"


class WrongMagicNumberError(EnvelopeError):
    code = "E101"
    message = "wrong magic number"


class InvalidEnvelopeError(EnvelopeError):
    code = "E102"
    message = "invalid .envelope file"


# Cryptographic errors (E2xx)
class KeyDerivationError(EnvelopeError):
    code = "E200"
    message = "key derivation failed"


class DecryptionFailedError(EnvelopeError):
    code = "E201"
    message = "decryption failed - wrong password?"


class UnsupportedVersionError(EnvelopeError):
    code = "E202"
    message = "unsupported envelope version"

    def __init__(self, version: int, expected: int):
        self.version = version
        self.expected = expected
        super().__init__(f"{version} (expected {expected})")


# State transition errors (E3xx)
class NotInitializedError(EnvelopeError):
    code = "E300"
    message = "envelope is not initialized, run `envelope init` first"


class AlreadyInitializedError(EnvelopeError):
    code = "E301"
    message = "envelope is already initialized"


class StillLockedError(EnvelopeError):
    code = "E302"
    message = "envelope is locked, run `envelope unlock` first"


class AlreadyLockedError(EnvelopeError):
    code = "E303"
    message = "envelope is already locked"


class AlreadyUnlockedError(EnvelopeError):
    code = "E304"
    message = "envelope is already unlocked"


# Password errors (E4xx)
class EmptyPasswordError(EnvelopeError):
    code = "E400"
    message = "password cannot be empty"


class PasswordMismatchError(EnvelopeError):
    code = "E401"
    message = "passwords do not match"


# Store errors (E5xx)
class StoreError(EnvelopeError):
    code = "E500"
    message = "db error"


class NotFoundError(EnvelopeError):
    code = "E501"
    message = "not found"


class AlreadyExistsError(EnvelopeError):
    code = "E502"
    message = "already exists"


class InvalidKeyError(EnvelopeError):
    code = "E503"
    message = "invalid key"


class InvalidArgumentError(EnvelopeError):
    code = "E504"
    message = "invalid argument"


# Collaborator errors (E6xx)
class ExternalCommandError(EnvelopeError):
    code = "E600"
    message = "failed to run command"
