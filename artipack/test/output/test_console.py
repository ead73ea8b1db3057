"""Tests for artipack.output.console module."""

from __future__ import annotations

import pytest

from artipack.output.console import ConsoleProtocol, MockConsole, RichConsole, Style


class TestStyle:
    def test_str_conversion(self) -> None:
        assert str(Style.SUCCESS) == "success"
        assert str(Style.HEADER) == "header"


class TestMockConsole:
    """Test MockConsole for testing purposes."""

    def test_prefixes(self) -> None:
        console = MockConsole()
        console.success("built")
        console.error("failed")
        console.warning("careful")
        console.info("note")
        assert console.messages == ["OK built", "error: failed", "warning: careful", "info: note"]
        assert console.has_error()
        assert console.has_warning()

    def test_table_is_flattened(self) -> None:
        console = MockConsole()
        console.table(["Name", "Type"], [["A", "CLIENT"], ["B", "SERVER"]], title="Collections")
        assert console.messages == ["Collections", "Name | Type", "A | CLIENT", "B | SERVER"]
        assert console.count(Style.HEADER) == 1
        assert console.count(Style.BOLD) == 1

    def test_find_and_clear(self) -> None:
        console = MockConsole()
        console.print("yara: downloaded", Style.DIM)
        console.newline()
        assert len(console.find("yara")) == 1
        assert console.text == "yara: downloaded\n"
        console.clear()
        assert console.outputs == []

    def test_satisfies_protocol(self) -> None:
        console: ConsoleProtocol = MockConsole()
        console.header("x")


class TestRichConsole:
    def test_markup_in_messages_is_escaped(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.error("[bold]not markup[/bold]")
        console.table(["Tool"], [["[red]yara[/red]"]])
        out = capsys.readouterr().out
        assert "[bold]not markup[/bold]" in out
        assert "[red]yara[/red]" in out
