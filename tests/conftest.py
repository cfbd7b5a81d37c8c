# ABOUTME: Shared pytest fixtures for mcpsync tests
# ABOUTME: Isolates HOME and provides an in-memory provider for orchestrator tests
import json
from pathlib import Path
from typing import Any

import pytest

from mcpsync.models import ConnectionSpec, Global, ProviderServer, Registry, WriteResult
from mcpsync.platforms.base import BaseProvider
from mcpsync.prompts import set_assume_yes


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME at a temp dir so no test touches real config files."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("MCPSYNC_CONFIG", raising=False)
    set_assume_yes(False)
    return home


class FakeProvider(BaseProvider):
    """In-memory provider that records every call.

    Enabled flags are kept per (server, project) pair. Scripted results in
    `toggle_results` are returned by enable/disable calls in order before
    falling back to computing Applied/NoChanges.
    """

    def __init__(
        self,
        name: str = "fake",
        projects: list[str] | None = None,
        servers: dict[str, ConnectionSpec] | None = None,
        disabled_state: bool = True,
        exists: bool = True,
    ) -> None:
        super().__init__(config_path=Path("unused"), confirm=lambda _: True)
        self._name = name
        self.projects = list(projects or [])
        self.servers: dict[str, ConnectionSpec] = dict(servers or {})
        self.flags: dict[tuple[str, str | None], bool] = {}
        self.disabled_state = disabled_state
        self.exists = exists
        self.toggle_results: list[WriteResult] = []
        self.install_result: WriteResult | None = None
        self.sync_result = WriteResult.NO_CHANGES
        self.fail_with: Exception | None = None
        self.calls: list[tuple[Any, ...]] = []
        self.synced: Registry | None = None

    @property
    def name(self) -> str:
        return self._name

    def config_exists(self) -> bool:
        return self.exists

    def get_projects(self) -> list[str]:
        if self.fail_with is not None:
            raise self.fail_with
        return list(self.projects)

    def supports_disabled_state(self) -> bool:
        return self.disabled_state

    def get_server_config(self, server_name: str) -> ConnectionSpec | None:
        return self.servers.get(server_name)

    def list_servers(self) -> dict[str, ProviderServer]:
        if self.fail_with is not None:
            raise self.fail_with
        return {
            name: ProviderServer(name=name, spec=spec, state=Global(True))
            for name, spec in self.servers.items()
        }

    def install_server(self, server_name: str, spec: ConnectionSpec) -> WriteResult:
        self.calls.append(("install", server_name))
        if self.install_result is not None:
            return self.install_result
        if self.servers.get(server_name) == spec:
            return WriteResult.NO_CHANGES
        self.servers[server_name] = spec
        return WriteResult.APPLIED

    def _toggle(self, server_names: list[str], project: str | None, enabled: bool) -> WriteResult:
        if self.toggle_results:
            return self.toggle_results.pop(0)
        changed = False
        for name in server_names:
            if self.flags.get((name, project)) is not enabled:
                self.flags[(name, project)] = enabled
                changed = True
        return WriteResult.APPLIED if changed else WriteResult.NO_CHANGES

    def enable_servers(self, server_names: list[str], project: str | None = None) -> WriteResult:
        self.calls.append(("enable", tuple(server_names), project))
        return self._toggle(server_names, project, True)

    def disable_servers(self, server_names: list[str], project: str | None = None) -> WriteResult:
        self.calls.append(("disable", tuple(server_names), project))
        return self._toggle(server_names, project, False)

    def sync_servers(self, registry: Registry) -> WriteResult:
        self.calls.append(("sync", tuple(sorted(registry.servers))))
        self.synced = registry
        return self.sync_result


@pytest.fixture
def make_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "mcp.json"


@pytest.fixture
def write_store(store_path: Path):
    """Write a unified config dict to store_path and return the path."""

    def _write(data: dict[str, Any]) -> Path:
        store_path.write_text(json.dumps(data, indent=2) + "\n")
        return store_path

    return _write
