import logging

from argon2.exceptions import Argon2Error
from argon2.low_level import hash_secret_raw, Type as Argon2Type
from dataclasses import dataclass

from envelope.errors import KeyDerivationError
from envelope.utils.dataModels import DEFAULT_T_COST, DEFAULT_M_COST_KiB, DEFAULT_PARALLELISM, KEY_LEN

logger = logging.getLogger("envelope.crypto")


@dataclass(frozen=True)
class KdfParams:
    t_cost: int
    m_cost_kib: int
    parallelism: int


# Looked up on every call so test suites can swap in cheap parameters.
KDF_PARAMS = KdfParams(DEFAULT_T_COST, DEFAULT_M_COST_KiB, DEFAULT_PARALLELISM)


def derive_key(password: bytes, salt: bytes, params: KdfParams | None = None) -> bytes:
    """key = Argon2id(password, salt) -> 32 bytes"""
    params = params or KDF_PARAMS
    try:
        key = hash_secret_raw(
            secret=bytes(password),
            salt=bytes(salt),
            time_cost=params.t_cost,
            memory_cost=params.m_cost_kib,
            parallelism=params.parallelism,
            hash_len=KEY_LEN,
            type=Argon2Type.ID,
        )
    except Argon2Error as e:
        raise KeyDerivationError(str(e)) from e
    logger.debug("derived key (t=%d, m=%dKiB, p=%d)", params.t_cost, params.m_cost_kib, params.parallelism)
    return key
