import logging
import os

from nacl.bindings import (
    crypto_aead_xchacha20poly1305_ietf_ABYTES as TAG_SIZE,
    crypto_aead_xchacha20poly1305_ietf_decrypt,
    crypto_aead_xchacha20poly1305_ietf_encrypt,
)
from nacl.exceptions import CryptoError

from envelope.crypto.hash import derive_key
from envelope.errors import DecryptionFailedError, UnsupportedVersionError
from envelope.utils.dataModels import EnvelopeFileHeader, NONCE_SIZE, SALT_SIZE, VAULT_VERSION

logger = logging.getLogger("envelope.crypto")


def aead_encrypt(key: bytes, nonce: bytes, plaintext: bytes, aad: bytes | None = None) -> bytes:
    return crypto_aead_xchacha20poly1305_ietf_encrypt(bytes(plaintext), aad, bytes(nonce), bytes(key))


def aead_decrypt(key: bytes, nonce: bytes, ct: bytes, aad: bytes | None = None) -> bytes:
    if len(ct) < TAG_SIZE:
        raise DecryptionFailedError()
    try:
        return crypto_aead_xchacha20poly1305_ietf_decrypt(bytes(ct), aad, bytes(nonce), bytes(key))
    except CryptoError:
        raise DecryptionFailedError() from None


def encrypt(plaintext: bytes, password: bytes, header: EnvelopeFileHeader) -> bytes:
    """Seal plaintext under password.

    Fresh salt and nonce are written into header, so the same plaintext and
    password never produce the same ciphertext twice.
    """
    header.wipe()
    header.salt = bytearray(os.urandom(SALT_SIZE))
    header.nonce = bytearray(os.urandom(NONCE_SIZE))
    key = derive_key(password, header.salt)
    ct = aead_encrypt(key, header.nonce, plaintext, header.associated_data())
    logger.debug("encrypted %d bytes -> %d bytes", len(plaintext), len(ct))
    return ct


def decrypt(ct: bytes, header: EnvelopeFileHeader, password: bytes) -> bytes:
    """Open a sealed blob.

    Wrong password, corrupted ciphertext and a tampered header are all
    reported as the same DecryptionFailedError.
    """
    if header.version != VAULT_VERSION:
        raise UnsupportedVersionError(header.version, VAULT_VERSION)
    key = derive_key(password, header.salt)
    plaintext = aead_decrypt(key, header.nonce, ct, header.associated_data())
    logger.debug("decrypted %d bytes", len(plaintext))
    return plaintext
