import argparse
import os

from envelope.ui.format import FORMAT_CHOICES
from envelope.utils.core import (
    cmd_add,
    cmd_edit,
    cmd_export,
    cmd_import,
    cmd_init,
    cmd_list,
    cmd_lock,
    cmd_run,
    cmd_unlock,
)
from envelope.utils.maintain import (
    cmd_check,
    cmd_delete,
    cmd_diff,
    cmd_drop,
    cmd_duplicate,
    cmd_history,
    cmd_revert,
    cmd_sync,
)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="envelope", description="Versioned environment variables, optionally encrypted at rest")
    p.add_argument("--dir", default=os.getcwd(), help="Directory holding the .envelope file (default: cwd)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="cmd")

    p_init = sub.add_parser("init", help="Create an empty envelope")
    p_init.set_defaults(func=cmd_init)

    p_lock = sub.add_parser("lock", help="Encrypt the envelope with a password")
    p_lock.add_argument("--passphrase", help="Password (prompted twice when omitted)")
    p_lock.set_defaults(func=cmd_lock)

    p_unlock = sub.add_parser("unlock", help="Decrypt the envelope")
    p_unlock.add_argument("--passphrase", help="Password (prompted when omitted)")
    p_unlock.set_defaults(func=cmd_unlock)

    p_add = sub.add_parser("add", help="Add or update a variable")
    p_add.add_argument("env", help="Environment")
    p_add.add_argument("key", help="Variable name")
    p_add.add_argument("value", nargs="?", help="Value (default: empty string)")
    p_add.set_defaults(func=cmd_add)

    p_check = sub.add_parser("check", help="Print environments active in the current shell")
    p_check.set_defaults(func=cmd_check)

    p_del = sub.add_parser("delete", help="Soft-delete a variable, a key everywhere, or a whole environment")
    p_del.add_argument("-e", "--env", help="Environment")
    p_del.add_argument("-k", "--key", help="Variable name")
    p_del.set_defaults(func=cmd_delete)

    p_drop = sub.add_parser("drop", help="Remove an environment and its history")
    p_drop.add_argument("env", help="Environment")
    p_drop.set_defaults(func=cmd_drop)

    p_dup = sub.add_parser("duplicate", help="Copy an environment into a new one")
    p_dup.add_argument("source", help="Source environment")
    p_dup.add_argument("target", help="New environment")
    p_dup.set_defaults(func=cmd_duplicate)

    p_diff = sub.add_parser("diff", help="Compare two environments")
    p_diff.add_argument("first", help="First environment")
    p_diff.add_argument("second", help="Second environment")
    p_diff.set_defaults(func=cmd_diff)

    p_edit = sub.add_parser("edit", help="Edit an environment in $ENVELOPE_EDITOR")
    p_edit.add_argument("env", help="Environment")
    p_edit.set_defaults(func=cmd_edit)

    p_exp = sub.add_parser("export", help="Write an environment as a dotenv file")
    p_exp.add_argument("env", help="Environment")
    p_exp.add_argument("-o", "--output", help="Output path (default: ./.env)")
    p_exp.set_defaults(func=cmd_export)

    p_hist = sub.add_parser("history", help="Show every change of a variable")
    p_hist.add_argument("env", help="Environment")
    p_hist.add_argument("key", help="Variable name")
    p_hist.set_defaults(func=cmd_history)

    p_imp = sub.add_parser("import", help="Import a dotenv file ('-' reads stdin)")
    p_imp.add_argument("env", help="Environment")
    p_imp.add_argument("path", help="dotenv file")
    p_imp.set_defaults(func=cmd_import)

    p_ls = sub.add_parser("list", help="List environments, or the variables of one")
    p_ls.add_argument("env", nargs="?", help="Environment (omit to list environments)")
    out = p_ls.add_mutually_exclusive_group()
    out.add_argument("-p", "--pretty-print", action="store_true", help="Render a table")
    out.add_argument("--shell", choices=FORMAT_CHOICES, help="Raw output format (default: kv)")
    p_ls.add_argument("-t", "--truncate", action="store_true", help="Truncate long values in the table")
    p_ls.add_argument("-s", "--sort", default="d", help="k, kd, v, vd, d or dd (default: d)")
    p_ls.set_defaults(func=cmd_list)

    p_rev = sub.add_parser("revert", help="Undo the last change of a variable")
    p_rev.add_argument("env", help="Environment")
    p_rev.add_argument("key", help="Variable name")
    p_rev.set_defaults(func=cmd_revert)

    p_run = sub.add_parser("run", help="Run a command with an environment injected")
    p_run.add_argument("-i", "--isolated", action="store_true", help="Do not inherit the parent environment")
    p_run.add_argument("env", help="Environment")
    p_run.add_argument("args", nargs=argparse.REMAINDER, help="-- command and arguments")
    p_run.set_defaults(func=cmd_run)

    p_sync = sub.add_parser("sync", help="Copy variables of one environment into another")
    p_sync.add_argument("source", help="Source environment")
    p_sync.add_argument("target", help="Target environment")
    p_sync.add_argument("-o", "--overwrite", action="store_true", help="Replace values already in target")
    p_sync.set_defaults(func=cmd_sync)

    return p
