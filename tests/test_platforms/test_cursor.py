# Tests for Cursor provider adapter
import json
from pathlib import Path

import pytest

from mcpsync.models import (
    Global,
    HttpSpec,
    PerProject,
    Registry,
    ServerMeta,
    ServerRecord,
    StdioSpec,
    WriteResult,
)
from mcpsync.platforms.cursor import CursorProvider


@pytest.fixture
def mcp_file(tmp_path: Path) -> Path:
    path = tmp_path / "mcp.json"
    path.write_text(
        json.dumps(
            {
                "mcpServers": {
                    "linear": {"url": "https://mcp.linear.app/sse"},
                    "context7": {"type": "http", "url": "https://mcp.context7.com/mcp"},
                    "weather": {"command": "node", "args": ["weather.js"]},
                }
            },
            indent=2,
        )
    )
    return path


def make_cursor(path: Path, tmp_path: Path, answer: bool = True) -> CursorProvider:
    return CursorProvider(config_path=path, confirm=lambda _: answer, backup_dir=tmp_path / "backups")


def test_cursor_properties(isolated_home: Path) -> None:
    provider = CursorProvider()

    assert provider.name == "cursor"
    assert provider._config_path == isolated_home / ".cursor" / "mcp.json"
    assert provider.supports_disabled_state() is False


def test_url_without_type_is_sse(mcp_file: Path, tmp_path: Path) -> None:
    provider = make_cursor(mcp_file, tmp_path)

    assert provider.get_server_config("linear") == HttpSpec(
        url="https://mcp.linear.app/sse", transport="sse"
    )
    assert provider.get_server_config("context7") == HttpSpec(url="https://mcp.context7.com/mcp")


def test_install_existing_equivalent_entry_is_no_changes(mcp_file: Path, tmp_path: Path) -> None:
    provider = make_cursor(mcp_file, tmp_path)

    result = provider.install_server("linear", HttpSpec(url="https://mcp.linear.app/sse", transport="sse"))

    assert result is WriteResult.NO_CHANGES


def test_rejected_disable_leaves_file(mcp_file: Path, tmp_path: Path) -> None:
    provider = make_cursor(mcp_file, tmp_path, answer=False)
    before = mcp_file.read_text()

    assert provider.disable_servers(["weather"]) is WriteResult.REJECTED
    assert mcp_file.read_text() == before


def test_is_server_enabled_in_meta_collapses_projects(tmp_path: Path) -> None:
    """Test PerProject counts as enabled when any project is enabled."""
    provider = make_cursor(tmp_path / "mcp.json", tmp_path)
    on = ServerRecord(
        name="x",
        spec=StdioSpec(command="x"),
        meta=ServerMeta(enabled={"cursor": PerProject({"/a": False, "/b": True})}),
    )
    off = ServerRecord(
        name="y",
        spec=StdioSpec(command="y"),
        meta=ServerMeta(enabled={"cursor": PerProject({"/a": False})}),
    )
    unknown = ServerRecord(name="z", spec=StdioSpec(command="z"))

    assert provider.is_server_enabled_in_meta(on) is True
    assert provider.is_server_enabled_in_meta(off) is False
    assert provider.is_server_enabled_in_meta(unknown) is False


def test_sync_creates_file_when_missing(tmp_path: Path) -> None:
    path = tmp_path / "cursor" / "mcp.json"
    provider = make_cursor(path, tmp_path)
    registry = Registry(
        servers={
            "weather": ServerRecord(
                name="weather",
                spec=StdioSpec(command="node", args=["weather.js"]),
                meta=ServerMeta(enabled={"cursor": Global(True)}),
            )
        }
    )

    assert provider.sync_servers(registry) is WriteResult.APPLIED
    assert json.loads(path.read_text()) == {
        "mcpServers": {"weather": {"command": "node", "args": ["weather.js"]}}
    }


def test_rename_replaces_existing_name(mcp_file: Path, tmp_path: Path) -> None:
    provider = make_cursor(mcp_file, tmp_path)

    assert provider.rename_server("linear", "weather") is WriteResult.APPLIED

    servers = json.loads(mcp_file.read_text())["mcpServers"]
    assert servers == {
        "weather": {"url": "https://mcp.linear.app/sse"},
        "context7": {"type": "http", "url": "https://mcp.context7.com/mcp"},
    }


def test_declined_rename_leaves_file(mcp_file: Path, tmp_path: Path) -> None:
    before = mcp_file.read_text()

    assert make_cursor(mcp_file, tmp_path, answer=False).rename_server("linear", "issues") is WriteResult.REJECTED
    assert mcp_file.read_text() == before
