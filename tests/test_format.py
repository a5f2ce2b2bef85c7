"""Unit tests for shell output formats and terminal rendering."""

import io

import pytest

from envelope.ui.format import (
    FORMAT_CHOICES,
    OutputFormat,
    diff_line,
    escape_cmd_value,
    escape_nu_value,
    escape_powershell_value,
    history_lines,
    make_console,
    pairs_table,
    quote_fish_value,
    quote_sh_value,
    render_raw,
    variables_table,
)
from envelope.utils.dataModels import ActiveVariable, Changed, InOnlyFirst, InOnlySecond, VariableEvent


def var(key, value):
    return ActiveVariable("dev", key, value, 0)


class TestOutputFormat:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("kv", OutputFormat.KV),
            ("bash", OutputFormat.SH),
            ("zsh", OutputFormat.SH),
            ("nushell", OutputFormat.NU),
            ("pwsh", OutputFormat.POWERSHELL),
            ("FISH", OutputFormat.FISH),
        ],
    )
    def test_parse_with_aliases(self, raw, expected):
        assert OutputFormat.parse(raw) is expected

    def test_unknown_format_is_rejected(self):
        with pytest.raises(ValueError):
            OutputFormat.parse("tcsh")

    def test_choices_cover_aliases(self):
        assert {"kv", "sh", "bash", "zsh", "fish", "nu", "nushell", "cmd", "powershell", "pwsh"} == set(FORMAT_CHOICES)


class TestQuoting:
    def test_sh_single_quote(self):
        assert quote_sh_value("it's") == "'it'\"'\"'s'"

    def test_sh_leaves_dollar_alone(self):
        assert quote_sh_value("$HOME") == "'$HOME'"

    def test_fish(self):
        assert quote_fish_value("a\\b'c") == "'a\\\\b\\'c'"

    def test_cmd(self):
        assert escape_cmd_value('a^b"c') == 'a^^b^"c'

    def test_powershell(self):
        assert escape_powershell_value('`"$x') == '```"`$x'

    def test_nu(self):
        assert escape_nu_value('a"b\\c\nd\re\tf') == 'a\\"b\\\\c\\nd\\re\\tf'


class TestRenderRaw:
    VARIABLES = [var("A", "1"), var("B", "it's")]

    @pytest.mark.parametrize(
        "fmt, expected",
        [
            (OutputFormat.KV, "A=1\nB=it's\n"),
            (OutputFormat.SH, "export A='1'\nexport B='it'\"'\"'s'\n"),
            (OutputFormat.FISH, "set -gx A '1'\nset -gx B 'it\\'s'\n"),
            (OutputFormat.CMD, 'set "A=1"\nset "B=it\'s"\n'),
            (OutputFormat.POWERSHELL, '$env:A = "1"\n$env:B = "it\'s"\n'),
            (OutputFormat.NU, '{"A": "1", "B": "it\'s"}\n'),
        ],
    )
    def test_formats(self, fmt, expected):
        assert render_raw(self.VARIABLES, fmt) == expected

    def test_empty_nu_record(self):
        assert render_raw([], OutputFormat.NU) == "{}\n"

    def test_empty_kv(self):
        assert render_raw([], OutputFormat.KV) == ""


class TestRich:
    def _render(self, renderable) -> str:
        buf = io.StringIO()
        make_console(buf).print(renderable)
        return buf.getvalue()

    def test_variables_table_has_titles_and_values(self):
        out = self._render(variables_table([var("A", "[bold]x[/bold]")]))
        assert "ENVIRONMENT" in out
        assert "VARIABLE" in out
        assert "[bold]x[/bold]" in out

    def test_pairs_table(self):
        out = self._render(pairs_table([("KEY", "value")]))
        assert "KEY" in out
        assert "value" in out

    @pytest.mark.parametrize(
        "entry, text",
        [
            (InOnlyFirst("A", "1"), "+ A=1"),
            (InOnlySecond("B", "2"), "- B=2"),
            (Changed("C", "x", "y"), "/ C=x -> y"),
        ],
    )
    def test_diff_line(self, entry, text):
        assert diff_line(entry).plain == text

    def test_diff_line_rejects_other_types(self):
        with pytest.raises(TypeError):
            diff_line("nope")


class TestHistoryLines:
    def test_active_and_inactive(self):
        events = [VariableEvent("dev", "A", "1", 0), VariableEvent("dev", "A", None, 60)]
        assert history_lines(events) == [
            "1970-01-01T00:00:00Z A=1",
            "1970-01-01T00:01:00Z A inactive",
        ]
