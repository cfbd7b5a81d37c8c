# Tests for Claude Code provider adapter
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
from mcpsync.platforms.claude import ClaudeProvider


@pytest.fixture
def claude_file(tmp_path: Path) -> Path:
    path = tmp_path / ".claude.json"
    path.write_text(
        json.dumps(
            {
                "numStartups": 12,
                "mcpServers": {
                    "github": {
                        "type": "stdio",
                        "command": "npx",
                        "args": ["-y", "@modelcontextprotocol/server-github"],
                    },
                    "docs": {"type": "sse", "url": "https://docs.example.com/sse"},
                },
                "projects": {
                    "/work/app": {"disabledMcpServers": ["docs"]},
                    "/work/lib": {
                        "mcpServers": {"local": {"type": "stdio", "command": "./run.sh", "args": []}}
                    },
                },
            },
            indent=2,
        )
    )
    return path


def make_claude(path: Path, tmp_path: Path, answer: bool = True) -> ClaudeProvider:
    return ClaudeProvider(config_path=path, confirm=lambda _: answer, backup_dir=tmp_path / "backups")


def test_default_path(isolated_home: Path) -> None:
    """Test the default config is ~/.claude.json."""
    provider = ClaudeProvider()

    assert provider.name == "claude"
    assert provider.config_path is None
    assert not provider.config_exists()
    assert provider._config_path == isolated_home / ".claude.json"


def test_get_projects(claude_file: Path, tmp_path: Path) -> None:
    assert make_claude(claude_file, tmp_path).get_projects() == ["/work/app", "/work/lib"]


def test_get_server_config(claude_file: Path, tmp_path: Path) -> None:
    """Test global servers are found first, then project servers."""
    provider = make_claude(claude_file, tmp_path)

    assert provider.get_server_config("docs") == HttpSpec(
        url="https://docs.example.com/sse", transport="sse"
    )
    assert provider.get_server_config("local") == StdioSpec(command="./run.sh")
    assert provider.get_server_config("missing") is None


def test_list_servers_reports_per_project_state(claude_file: Path, tmp_path: Path) -> None:
    servers = make_claude(claude_file, tmp_path).list_servers()

    assert servers["docs"].state == PerProject({"/work/app": False, "/work/lib": True})
    assert servers["github"].state == PerProject({"/work/app": True, "/work/lib": True})
    assert servers["local"].state == PerProject({"/work/lib": True})


def test_install_same_spec_is_no_changes(claude_file: Path, tmp_path: Path) -> None:
    provider = make_claude(claude_file, tmp_path)
    before = claude_file.read_text()

    result = provider.install_server(
        "github", StdioSpec(command="npx", args=["-y", "@modelcontextprotocol/server-github"])
    )

    assert result is WriteResult.NO_CHANGES
    assert claude_file.read_text() == before
    assert not (tmp_path / "backups").exists()


def test_install_new_server_applies_and_backs_up(claude_file: Path, tmp_path: Path) -> None:
    provider = make_claude(claude_file, tmp_path)

    result = provider.install_server("weather", StdioSpec(command="node", args=["weather.js"]))

    data = json.loads(claude_file.read_text())
    assert result is WriteResult.APPLIED
    assert data["mcpServers"]["weather"] == {
        "type": "stdio",
        "command": "node",
        "args": ["weather.js"],
    }
    # Unrelated settings survive
    assert data["numStartups"] == 12
    assert len(list((tmp_path / "backups").glob("claude_*.json"))) == 1


def test_declined_confirmation_is_rejected(claude_file: Path, tmp_path: Path) -> None:
    provider = make_claude(claude_file, tmp_path, answer=False)
    before = claude_file.read_text()

    result = provider.install_server("weather", StdioSpec(command="node"))

    assert result is WriteResult.REJECTED
    assert claude_file.read_text() == before


def test_disable_globally_touches_every_project(claude_file: Path, tmp_path: Path) -> None:
    provider = make_claude(claude_file, tmp_path)

    result = provider.disable_servers(["github"])

    data = json.loads(claude_file.read_text())
    assert result is WriteResult.APPLIED
    assert data["disabledMcpServers"] == ["github"]
    assert data["projects"]["/work/app"]["disabledMcpServers"] == ["docs", "github"]
    assert data["projects"]["/work/lib"]["disabledMcpServers"] == ["github"]


def test_enable_single_project(claude_file: Path, tmp_path: Path) -> None:
    provider = make_claude(claude_file, tmp_path)

    result = provider.enable_servers(["docs"], "/work/app")

    data = json.loads(claude_file.read_text())
    assert result is WriteResult.APPLIED
    assert data["projects"]["/work/app"]["disabledMcpServers"] == []
    assert "disabledMcpServers" not in data["projects"]["/work/lib"]


def test_enable_already_enabled_is_no_changes(claude_file: Path, tmp_path: Path) -> None:
    provider = make_claude(claude_file, tmp_path)

    assert provider.enable_servers(["github"], "/work/lib") is WriteResult.NO_CHANGES


def test_unknown_project_raises(claude_file: Path, tmp_path: Path) -> None:
    provider = make_claude(claude_file, tmp_path)

    with pytest.raises(ValueError, match="Unknown project"):
        provider.enable_servers(["github"], "/nowhere")


def test_sync_applies_meta(claude_file: Path, tmp_path: Path) -> None:
    """Test sync installs servers and maps _meta onto the disabled lists."""
    provider = make_claude(claude_file, tmp_path)
    registry = Registry(
        servers={
            "docs": ServerRecord(
                name="docs",
                spec=HttpSpec(url="https://docs.example.com/sse", transport="sse"),
                meta=ServerMeta(enabled={"claude": PerProject({"/work/app": True})}),
            ),
            "weather": ServerRecord(
                name="weather",
                spec=StdioSpec(command="node", args=["weather.js"]),
                meta=ServerMeta(enabled={"claude": Global(True)}),
            ),
            "never": ServerRecord(name="never", spec=StdioSpec(command="never")),
        }
    )

    assert provider.sync_servers(registry) is WriteResult.APPLIED

    data = json.loads(claude_file.read_text())
    assert "weather" in data["mcpServers"]
    assert "never" in data["mcpServers"]
    assert data["disabledMcpServers"] == ["never"]
    assert data["projects"]["/work/app"]["disabledMcpServers"] == ["never"]
    assert data["projects"]["/work/lib"]["disabledMcpServers"] == ["docs", "never"]

    # Second pass has nothing left to do
    assert provider.sync_servers(registry) is WriteResult.NO_CHANGES


def test_invalid_json_raises(tmp_path: Path) -> None:
    path = tmp_path / ".claude.json"
    path.write_text("{oops")

    with pytest.raises(ValueError, match="Invalid JSON"):
        make_claude(path, tmp_path).get_projects()


def test_rename_carries_disabled_state(claude_file: Path, tmp_path: Path) -> None:
    """Test renaming keeps the entry's position and every disabled list entry."""
    provider = make_claude(claude_file, tmp_path)

    assert provider.rename_server("docs", "reference") is WriteResult.APPLIED

    data = json.loads(claude_file.read_text())
    assert list(data["mcpServers"]) == ["github", "reference"]
    assert data["mcpServers"]["reference"] == {"type": "sse", "url": "https://docs.example.com/sse"}
    assert data["projects"]["/work/app"]["disabledMcpServers"] == ["reference"]
    assert data["numStartups"] == 12
    assert len(list((tmp_path / "backups").glob("claude_*.json"))) == 1


def test_rename_project_only_server(claude_file: Path, tmp_path: Path) -> None:
    provider = make_claude(claude_file, tmp_path)

    assert provider.rename_server("local", "runner") is WriteResult.APPLIED

    project = json.loads(claude_file.read_text())["projects"]["/work/lib"]
    assert list(project["mcpServers"]) == ["runner"]


def test_rename_missing_server_is_no_changes(claude_file: Path, tmp_path: Path) -> None:
    before = claude_file.read_text()

    assert make_claude(claude_file, tmp_path).rename_server("nope", "other") is WriteResult.NO_CHANGES
    assert claude_file.read_text() == before


def test_malformed_disabled_list_raises(tmp_path: Path) -> None:
    path = tmp_path / ".claude.json"
    path.write_text(
        json.dumps(
            {
                "mcpServers": {"github": {"type": "stdio", "command": "npx", "args": []}},
                "projects": {"/work/app": {"disabledMcpServers": "github"}},
            }
        )
    )

    with pytest.raises(ValueError, match="'disabledMcpServers' to be a list"):
        make_claude(path, tmp_path).disable_servers(["github"], "/work/app")


def test_sync_null_servers_section_raises(tmp_path: Path) -> None:
    path = tmp_path / ".claude.json"
    path.write_text(json.dumps({"mcpServers": None}))
    registry = Registry(servers={"github": ServerRecord(name="github", spec=StdioSpec(command="npx"))})

    with pytest.raises(ValueError, match="'mcpServers' to be an object, got NoneType"):
        make_claude(path, tmp_path).sync_servers(registry)
