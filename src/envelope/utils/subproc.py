import logging
import os
import subprocess

from typing import Iterable, Mapping, Optional, Sequence, Tuple

from envelope.errors import ExternalCommandError

logger = logging.getLogger("envelope.subproc")

# Kept when the child does not inherit the parent environment.
ISOLATED_PASSTHROUGH = ("PATH", "Path")


def child_environment(
    variables: Iterable[Tuple[str, str]],
    isolated: bool = False,
    environ: Optional[Mapping[str, str]] = None,
) -> dict:
    environ = os.environ if environ is None else environ
    if isolated:
        env = {name: environ[name] for name in ISOLATED_PASSTHROUGH if name in environ}
    else:
        env = dict(environ)
    env.update(variables)
    return env


def run_with_env(
    command: Sequence[str],
    variables: Iterable[Tuple[str, str]] = (),
    isolated: bool = False,
    environ: Optional[Mapping[str, str]] = None,
) -> int:
    """Run command to completion with variables injected; return its exit status."""
    if not command:
        raise ExternalCommandError("no command provided")
    env = child_environment(variables, isolated, environ)
    logger.debug("running %s (isolated=%s)", command[0], isolated)
    try:
        completed = subprocess.run(list(command), env=env)
    except OSError as e:
        raise ExternalCommandError(f"'{command[0]}': {e}") from e
    return completed.returncode
