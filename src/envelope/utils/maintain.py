import argparse
import os

from envelope.errors import InvalidArgumentError
from envelope.storage import state
from envelope.storage.derive import active_environments, current_values
from envelope.ui.format import diff_line, history_lines, make_console
from envelope.utils.core import store_paths


def cmd_delete(args: argparse.Namespace) -> None:
    if args.env is None and args.key is None:
        raise InvalidArgumentError("pass --env, --key or both")
    with state.open_store(store_paths(args)) as db:
        if args.env is not None and args.key is not None:
            count = db.soft_delete(args.env, args.key)
        elif args.key is not None:
            count = db.soft_delete_key_globally(args.key)
        else:
            count = db.soft_delete_env(args.env)
    print(f"[+] Deleted {count} variable(s)")


def cmd_drop(args: argparse.Namespace) -> None:
    with state.open_store(store_paths(args)) as db:
        removed = db.delete_env(args.env)
    if not removed:
        print(f"[+] Nothing to drop for {args.env}")
        return
    print(f"[+] Dropped {args.env} ({removed} event(s))")


def cmd_duplicate(args: argparse.Namespace) -> None:
    with state.open_store(store_paths(args)) as db:
        count = db.duplicate(args.source, args.target)
    print(f"[+] Duplicated {args.source} -> {args.target} ({count} variable(s))")


def cmd_sync(args: argparse.Namespace) -> None:
    with state.open_store(store_paths(args)) as db:
        count = db.sync(args.source, args.target, overwrite=args.overwrite)
    print(f"[+] Synced {count} variable(s) from {args.source} into {args.target}")


def cmd_revert(args: argparse.Namespace) -> None:
    with state.open_store(store_paths(args)) as db:
        reverted = db.revert(args.env, args.key)
    if not reverted:
        print(f"[+] Nothing to revert for {args.key} in {args.env}")
        return
    print(f"[+] Reverted {args.key} in {args.env}")


def cmd_history(args: argparse.Namespace) -> None:
    with state.open_store(store_paths(args)) as db:
        events = db.history(args.env, args.key)
    for line in history_lines(events):
        print(line)


def cmd_diff(args: argparse.Namespace) -> None:
    with state.open_store(store_paths(args)) as db:
        entries = db.diff(args.first, args.second)
    console = make_console()
    for entry in entries:
        console.print(diff_line(entry))


def cmd_check(args: argparse.Namespace) -> None:
    with state.open_store(store_paths(args)) as db:
        variables = current_values(db.events())
    for env in sorted(active_environments(variables, dict(os.environ))):
        print(env)
