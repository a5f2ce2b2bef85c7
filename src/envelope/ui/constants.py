"""Shared output constants for the envelope CLI."""

# Diff line styling (rich style names), keyed by the diff marker
DIFF_STYLES = {
    "+": "green",        # only in the first environment
    "-": "red",          # only in the second environment
    "/": "bright_black"  # present in both, different value
}

# Table column styling
TABLE_STYLES = {
    "env": "yellow",
    "key": "bold red",
    "value": "blue",
}

ENV_TABLE_TITLES = ("ENVIRONMENT", "VARIABLE", "VALUE")
STDIN_TABLE_TITLES = ("VARIABLE", "VALUE")

# `list --pretty-print --truncate` value width
TRUNCATE_WIDTH = 60
