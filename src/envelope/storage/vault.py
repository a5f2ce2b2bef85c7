import logging
import os

from pathlib import Path
from typing import Iterable, Optional, Tuple

from envelope.errors import InvalidEnvelopeError
from envelope.utils.dataModels import EnvelopeFileHeader, VAULT_HDR_SIZE

logger = logging.getLogger("envelope.vault")


def atomic_write(path: Path, chunks: Iterable[bytes], tmp: Optional[Path] = None) -> None:
    """Replace path with the concatenation of chunks, all or nothing.

    Data goes to a sibling temp file which is fsync'ed before being renamed
    over path. Any failure before the rename leaves path untouched.
    """
    tmp = tmp or path.with_name(path.name + ".tmp")
    written = 0
    try:
        with tmp.open("wb") as f:
            for chunk in chunks:
                f.write(chunk)
                written += len(chunk)
            f.flush()
            os.fsync(f.fileno())
    except BaseException:
        try:
            tmp.unlink()
        except OSError as e:
            logger.warning("could not remove %s: %s", tmp, e)
        raise
    os.replace(tmp, path)
    logger.debug("wrote %d bytes to %s", written, path)


def save_vault(path: Path, header: EnvelopeFileHeader, ct: bytes, tmp: Optional[Path] = None) -> None:
    atomic_write(path, (header.to_bytes(), ct), tmp)


def load_vault(path: Path) -> Tuple[EnvelopeFileHeader, bytes]:
    data = path.read_bytes()
    if len(data) < VAULT_HDR_SIZE:
        raise InvalidEnvelopeError(f"{path.name} is too small or corrupt")
    header = EnvelopeFileHeader.from_bytes(data[:VAULT_HDR_SIZE])
    return header, data[VAULT_HDR_SIZE:]
