"""Plain KEY=VALUE text, as read by `import` and written by `export`.

No quoting or escaping: a line is split on its first `=`, the key is
stripped of surrounding whitespace and the value is kept verbatim.
"""
from typing import Iterable, List, Tuple

from envelope.utils.dataModels import ActiveVariable, COMMENT_MARKER


def parse_dotenv(lines: Iterable[str]) -> Tuple[List[Tuple[str, str]], List[str]]:
    """Split lines into (key, value) pairs and the lines that were skipped.

    Blank lines are dropped silently; comments (indented or not) and lines
    without `=` are returned as skipped so the caller can report them.
    """
    pairs: List[Tuple[str, str]] = []
    skipped: List[str] = []
    for raw in lines:
        line = raw.rstrip("\r\n")
        if not line.strip():
            continue
        if line.lstrip().startswith(COMMENT_MARKER) or "=" not in line:
            skipped.append(line)
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        if not key:
            skipped.append(line)
            continue
        pairs.append((key, value))
    return pairs, skipped


def format_dotenv(variables: Iterable[ActiveVariable]) -> str:
    return "".join(f"{v.key}={v.value}\n" for v in variables)
