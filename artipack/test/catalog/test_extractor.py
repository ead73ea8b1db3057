"""Tests for catalog/extractor.py - tool references in query text."""

import re
from pathlib import Path

from artipack.catalog.extractor import PATTERNS, ToolPattern, enrich, extract_tool_names
from artipack.catalog.models import CollectionDefinition, Source


def _definition(*queries: str, preconditions: list[str] | None = None) -> CollectionDefinition:
    return CollectionDefinition(
        name="Test.Collection",
        file_path=Path("test.yaml"),
        preconditions=preconditions or [],
        sources=[Source(query=q) for q in queries],
    )


class TestExtractToolNames:
    def test_execve_argv(self) -> None:
        text = 'SELECT * FROM execve(argv=["yara.exe", "-r", "rules.yar"])'
        assert extract_tool_names(text) == ["yara"]

    def test_execve_single_quotes_and_spacing(self) -> None:
        text = "SELECT * FROM execve( argv = [ 'cmd.exe', '/c', 'dir' ])"
        assert extract_tool_names(text) == ["cmd"]

    def test_windows_path_is_reduced_to_basename(self) -> None:
        text = r'execve(argv=["C:\Program Files\Sysinternals\Autorunsc64.EXE", "-a", "*"])'
        assert extract_tool_names(text) == ["autorunsc64"]

    def test_tool_name_parameter(self) -> None:
        text = 'LET bin <= SELECT * FROM Artifact.Generic.Utils.FetchBinary(ToolName="Hayabusa")'
        assert extract_tool_names(text) == ["hayabusa"]

    def test_tool_name_variants(self) -> None:
        assert extract_tool_names("tool_name: 'winpmem'") == ["winpmem"]
        assert extract_tool_names('tool name = "avml"') == ["avml"]

    def test_executable_and_binary(self) -> None:
        text = 'executable="osqueryi" binary: "chainsaw"'
        assert extract_tool_names(text) == ["osqueryi", "chainsaw"]

    def test_command_takes_first_token(self) -> None:
        text = 'SELECT * FROM execve(argv=split(string=command, sep=" ")) WHERE command="netstat -ano"'
        assert extract_tool_names(text) == ["netstat"]

    def test_deduplicated_in_discovery_order(self) -> None:
        text = (
            'execve(argv=["yara", "a"]) '
            'execve(argv=["handle.exe"]) '
            'ToolName="Yara"'
        )
        assert extract_tool_names(text) == ["yara", "handle"]

    def test_no_references(self) -> None:
        assert extract_tool_names("SELECT * FROM pslist()") == []
        assert extract_tool_names("") == []

    def test_malformed_text_never_raises(self) -> None:
        assert extract_tool_names('execve(argv=["unterminated') == []
        assert extract_tool_names('ToolName=""') == []
        assert extract_tool_names("executable='$$$'") == []

    def test_custom_pattern_table(self) -> None:
        patterns = (ToolPattern("run", re.compile(r"run\((?P<tool>\w+)\)")),)
        assert extract_tool_names("run(Sigcheck)", patterns) == ["sigcheck"]

    def test_pattern_labels(self) -> None:
        labels = [p.label for p in PATTERNS]
        assert labels == ["execve", "tool-name", "executable", "binary", "command"]


class TestEnrich:
    def test_merges_after_declared(self) -> None:
        definition = _definition('execve(argv=["yara.exe"])')
        definition.dependencies = ["autorunsc"]
        enrich(definition)
        assert definition.dependencies == ["autorunsc", "yara"]

    def test_scans_preconditions(self) -> None:
        definition = _definition(
            "SELECT * FROM info()",
            preconditions=['SELECT * FROM execve(argv=["powershell.exe", "-c", "1"])'],
        )
        enrich(definition)
        assert definition.dependencies == ["powershell"]

    def test_scans_source_preconditions(self) -> None:
        definition = CollectionDefinition(
            name="X",
            file_path=Path("x.yaml"),
            sources=[Source(query="SELECT 1 FROM scope()", precondition='binary="lsof"')],
        )
        enrich(definition)
        assert definition.dependencies == ["lsof"]

    def test_idempotent(self) -> None:
        definition = _definition(
            'execve(argv=["yara.exe"])',
            'ToolName="Sigcheck" command="netstat -an"',
        )
        enrich(definition)
        first = list(definition.dependencies)
        enrich(definition)
        assert definition.dependencies == first
        assert first == ["yara", "sigcheck", "netstat"]
