import datetime as _dt
import getpass
import os

from pathlib import Path
from typing import Dict, Mapping, Optional

from envelope.errors import EmptyPasswordError, PasswordMismatchError

ENVELOPE_FILENAME = ".envelope"
EDITMSG_FILENAME = ".ENVELOPE_EDITMSG"


def envelope_paths(root: Path, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Path]:
    """Store file, its temp sibling and the editor scratch file.

    ENVELOPE_PATH overrides the store location; the scratch file stays in root.
    """
    environ = os.environ if environ is None else environ
    override = environ.get("ENVELOPE_PATH")
    store = Path(override) if override else root / ENVELOPE_FILENAME
    return {
        "envelope": store,
        "tmp": store.with_name(store.name + ".tmp"),
        "editmsg": root / EDITMSG_FILENAME,
    }


def rel_time_iso(ts: float | None) -> str:
    if ts is None:
        return _dt.datetime.now(_dt.timezone.utc).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")
    return _dt.datetime.fromtimestamp(ts, _dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def check_passwords(password: str, confirm: str) -> None:
    if not password:
        raise EmptyPasswordError()
    if password != confirm:
        raise PasswordMismatchError()


def prompt_password(prompt: str = "Password: ") -> str:
    return getpass.getpass(prompt)


def prompt_password_confirm() -> tuple[str, str]:
    password = prompt_password("Password: ")
    if not password:
        raise EmptyPasswordError()
    return password, prompt_password("Confirm password: ")
