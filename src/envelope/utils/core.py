import argparse
import logging
import sys

from pathlib import Path
from typing import Dict, Optional, TextIO

from envelope.errors import AlreadyLockedError, InvalidArgumentError, InvalidKeyError, NotFoundError
from envelope.storage import state
from envelope.storage.db import SortKey, normalize_key
from envelope.ui.constants import TRUNCATE_WIDTH
from envelope.ui.format import OutputFormat, make_console, pairs_table, render_raw, variables_table
from envelope.utils.dataModels import COMMENT_MARKER
from envelope.utils.dotenv import format_dotenv, parse_dotenv
from envelope.utils.editor import parse_edit, spawn_with
from envelope.utils.helper import envelope_paths, prompt_password, prompt_password_confirm
from envelope.utils.subproc import run_with_env

logger = logging.getLogger("envelope.cli")


def store_paths(args: argparse.Namespace) -> Dict[str, Path]:
    return envelope_paths(Path(args.dir))


def cmd_init(args: argparse.Namespace) -> None:
    p = store_paths(args)
    state.init(p).close()
    print(f"[+] Initialized envelope at {p['envelope']}")


def cmd_lock(args: argparse.Namespace) -> None:
    p = store_paths(args)
    # State errors come before the password prompt.
    envelope = state.require_unlocked(p, AlreadyLockedError)
    if args.passphrase is not None:
        password = confirm = args.passphrase
    else:
        password, confirm = prompt_password_confirm()
    envelope.lock(password, confirm)
    print(f"[+] Locked {p['envelope']}")


def cmd_unlock(args: argparse.Namespace) -> None:
    p = store_paths(args)
    envelope = state.require_locked(p)
    password = args.passphrase if args.passphrase is not None else prompt_password()
    envelope.unlock(password)
    print(f"[+] Unlocked {p['envelope']}")


def check_key(key: str) -> str:
    key = key.strip()
    if not key:
        raise InvalidKeyError("key name cannot be empty")
    if key.startswith(COMMENT_MARKER):
        raise InvalidKeyError(f"key name cannot start with {COMMENT_MARKER}")
    return key


def cmd_add(args: argparse.Namespace) -> None:
    key = check_key(args.key)
    value = args.value if args.value is not None else ""
    with state.open_store(store_paths(args)) as db:
        db.insert(args.env, key, value)
    print(f"[+] {args.env}: {normalize_key(key)} set")


def cmd_list(args: argparse.Namespace) -> None:
    with state.open_store(store_paths(args)) as db:
        if args.env is None:
            if args.shell:
                raise InvalidArgumentError("--shell requires an environment")
            for env in db.list_environments():
                print(env)
            return
        sort = SortKey.parse(args.sort)
        if args.pretty_print:
            truncate = TRUNCATE_WIDTH if args.truncate else None
            make_console().print(variables_table(db.list_active(args.env, sort, truncate)))
            return
        fmt = OutputFormat.parse(args.shell) if args.shell else OutputFormat.KV
        sys.stdout.write(render_raw(db.list_active(args.env, sort), fmt))


def print_from_stdin(stream: Optional[TextIO] = None) -> None:
    """Show KEY=VALUE lines piped into the bare command as a table."""
    pairs, _ = parse_dotenv(stream or sys.stdin)
    make_console().print(pairs_table(pairs))


def cmd_import(args: argparse.Namespace) -> None:
    if args.path == "-":
        pairs, skipped = parse_dotenv(sys.stdin)
    else:
        with open(args.path, "r", encoding="utf-8") as f:
            pairs, skipped = parse_dotenv(f)
    for line in skipped:
        print(f"skipping {line}")
    with state.open_store(store_paths(args)) as db:
        count = db.insert_many(args.env, pairs)
    print(f"[+] Imported {count} variable(s) into {args.env}")


def cmd_export(args: argparse.Namespace) -> None:
    out = Path(args.output) if args.output else Path(args.dir) / ".env"
    with state.open_store(store_paths(args)) as db:
        if not db.env_exists(args.env):
            raise NotFoundError(f"env {args.env} does not exist")
        variables = db.list_active(args.env, SortKey.KEY)
    with out.open("w", encoding="utf-8") as f:
        f.write(format_dotenv(variables))
    print(f"[+] Exported {len(variables)} variable(s) to {out}")


def cmd_edit(args: argparse.Namespace) -> None:
    p = store_paths(args)
    with state.open_store(p) as db:
        current = {v.key: v.value for v in db.list_active(args.env, SortKey.KEY)}
        data = "".join(f"{k}={v}\n" for k, v in current.items()).rstrip("\n")
        deletions, upserts = parse_edit(spawn_with(data, p["editmsg"]))

        for key in deletions:
            if db.soft_delete(args.env, key):
                current.pop(normalize_key(key), None)
        changed = [(k, v) for k, v in upserts if current.get(normalize_key(k)) != v]
        db.insert_many(args.env, changed)
    logger.debug("edit %s: %d deleted, %d changed", args.env, len(deletions), len(changed))
    print(f"[+] {args.env} updated")


def cmd_run(args: argparse.Namespace) -> int:
    command = args.args[1:] if args.args[:1] == ["--"] else args.args
    with state.open_store(store_paths(args)) as db:
        if not db.env_exists(args.env):
            raise NotFoundError(f"env {args.env} does not exist")
        variables = [(v.key, v.value) for v in db.list_active(args.env, SortKey.KEY)]
    return run_with_env(command, variables, isolated=args.isolated)
