"""Rendering of variables for terminals and shells."""
import sys

from enum import Enum
from typing import Iterable, List, Optional, Sequence, TextIO, Tuple

from rich.console import Console
from rich.table import Table
from rich.text import Text

from envelope.ui.constants import DIFF_STYLES, ENV_TABLE_TITLES, STDIN_TABLE_TITLES, TABLE_STYLES
from envelope.utils.dataModels import ActiveVariable, Changed, DiffEntry, InOnlyFirst, InOnlySecond, VariableEvent
from envelope.utils.helper import rel_time_iso


class OutputFormat(Enum):
    KV = "kv"
    SH = "sh"
    FISH = "fish"
    NU = "nu"
    CMD = "cmd"
    POWERSHELL = "powershell"

    @classmethod
    def parse(cls, raw: str) -> "OutputFormat":
        raw = raw.strip().lower()
        return _FORMAT_ALIASES.get(raw) or cls(raw)


_FORMAT_ALIASES = {
    "bash": OutputFormat.SH,
    "zsh": OutputFormat.SH,
    "nushell": OutputFormat.NU,
    "pwsh": OutputFormat.POWERSHELL,
}

FORMAT_CHOICES = sorted([f.value for f in OutputFormat] + list(_FORMAT_ALIASES))


def quote_sh_value(value: str) -> str:
    return "'" + value.replace("'", "'\"'\"'") + "'"


def quote_fish_value(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def escape_cmd_value(value: str) -> str:
    return value.replace("^", "^^").replace('"', '^"')


def escape_nu_value(value: str) -> str:
    out = []
    for ch in value:
        out.append({"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"}.get(ch, ch))
    return "".join(out)


def escape_powershell_value(value: str) -> str:
    out = []
    for ch in value:
        out.append("`" + ch if ch in '`"$' else ch)
    return "".join(out)


def format_raw_entry(key: str, value: str, fmt: OutputFormat) -> str:
    if fmt is OutputFormat.KV:
        return f"{key}={value}"
    if fmt is OutputFormat.SH:
        return f"export {key}={quote_sh_value(value)}"
    if fmt is OutputFormat.FISH:
        return f"set -gx {key} {quote_fish_value(value)}"
    if fmt is OutputFormat.CMD:
        return f'set "{key}={escape_cmd_value(value)}"'
    if fmt is OutputFormat.POWERSHELL:
        return f'$env:{key} = "{escape_powershell_value(value)}"'
    raise ValueError("nu output is rendered as a single record")


def format_nu_record(variables: Sequence[ActiveVariable]) -> str:
    fields = ", ".join(f'"{escape_nu_value(v.key)}": "{escape_nu_value(v.value)}"' for v in variables)
    return "{" + fields + "}\n"


def render_raw(variables: Sequence[ActiveVariable], fmt: OutputFormat = OutputFormat.KV) -> str:
    if fmt is OutputFormat.NU:
        return format_nu_record(variables)
    return "".join(format_raw_entry(v.key, v.value, fmt) + "\n" for v in variables)


def make_console(file: Optional[TextIO] = None) -> Console:
    # soft_wrap: long values must never be folded onto a second line
    return Console(file=file or sys.stdout, highlight=False, soft_wrap=True)


def variables_table(variables: Iterable[ActiveVariable]) -> Table:
    table = Table(*ENV_TABLE_TITLES)
    for v in variables:
        table.add_row(
            Text(v.env, style=TABLE_STYLES["env"]),
            Text(v.key, style=TABLE_STYLES["key"]),
            Text(v.value, style=TABLE_STYLES["value"]),
        )
    return table


def pairs_table(pairs: Iterable[Tuple[str, str]]) -> Table:
    table = Table(*STDIN_TABLE_TITLES)
    for key, value in pairs:
        table.add_row(Text(key, style=TABLE_STYLES["key"]), Text(value, style=TABLE_STYLES["value"]))
    return table


def diff_line(entry: DiffEntry) -> Text:
    if isinstance(entry, InOnlyFirst):
        return Text(f"+ {entry.key}={entry.value}", style=DIFF_STYLES["+"])
    if isinstance(entry, InOnlySecond):
        return Text(f"- {entry.key}={entry.value}", style=DIFF_STYLES["-"])
    if isinstance(entry, Changed):
        return Text(f"/ {entry.key}={entry.first} -> {entry.second}", style=DIFF_STYLES["/"])
    raise TypeError(f"not a diff entry: {entry!r}")


def history_lines(events: Iterable[VariableEvent]) -> List[str]:
    lines = []
    for e in events:
        stamp = rel_time_iso(e.created_at)
        lines.append(f"{stamp} {e.key}={e.value}" if e.active else f"{stamp} {e.key} inactive")
    return lines
