import logging
import os
import shlex

from pathlib import Path
from typing import List, Mapping, Optional, Tuple

from envelope.errors import ExternalCommandError
from envelope.utils.dataModels import COMMENT_MARKER
from envelope.utils.subproc import run_with_env

logger = logging.getLogger("envelope.editor")

EDIT_FOOTER = "\n\n# Comment variables to remove them\n"


def resolve_editor(environ: Optional[Mapping[str, str]] = None) -> str:
    environ = os.environ if environ is None else environ
    return environ.get("ENVELOPE_EDITOR") or environ.get("GIT_EDITOR") or "vi"


def spawn_with(data: str, scratch: Path, environ: Optional[Mapping[str, str]] = None) -> str:
    """Let the user edit data in their editor and return the result."""
    scratch.write_text(data + EDIT_FOOTER, encoding="utf-8")
    try:
        command = shlex.split(resolve_editor(environ)) + [str(scratch)]
        status = run_with_env(command, environ=environ)
        if status != 0:
            raise ExternalCommandError(f"editor exited with status {status}")
        return scratch.read_text(encoding="utf-8")
    finally:
        try:
            scratch.unlink()
        except OSError as e:
            logger.warning("could not remove %s: %s", scratch, e)


def parse_edit(text: str) -> Tuple[List[str], List[Tuple[str, str]]]:
    """Commented KEY=VALUE lines are deletions, plain KEY=VALUE lines are upserts."""
    delete: List[str] = []
    upsert: List[Tuple[str, str]] = []
    for line in text.splitlines():
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        if key.startswith(COMMENT_MARKER):
            key = key.lstrip(COMMENT_MARKER).strip()
            if key:
                delete.append(key)
        elif key:
            upsert.append((key, value.strip()))
    return delete, upsert
