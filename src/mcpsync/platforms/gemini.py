# Gemini CLI provider adapter
import copy
from pathlib import Path
from typing import Any

from mcpsync.models import (
    ConnectionSpec,
    Global,
    HttpSpec,
    ProviderServer,
    Registry,
    StdioSpec,
    WriteResult,
)
from mcpsync.platforms.base import (
    BaseProvider,
    ensure_dict,
    ensure_list,
    rename_in_list,
    rename_key,
    stdio_entry,
    stdio_spec,
)


def _excluded(data: dict[str, Any]) -> list[str]:
    mcp = data.get("mcp")
    if not isinstance(mcp, dict):
        return []
    excluded = mcp.get("excluded")
    return excluded if isinstance(excluded, list) else []


def _set_excluded(data: dict[str, Any], name: str, excluded: bool) -> None:
    """Add or remove a name in mcp.excluded, creating the list only when adding."""
    if excluded:
        mcp = ensure_dict(data, "mcp")
        names = ensure_list(mcp, "excluded")
        if name not in names:
            names.append(name)
    else:
        names = _excluded(data)
        if name in names:
            names.remove(name)


class GeminiProvider(BaseProvider):
    """Adapter for Gemini CLI (~/.gemini/settings.json).

    ABOUTME: Disabled servers are listed in mcp.excluded
    ABOUTME: Preserves other settings like selectedAuthType, theme
    """

    PROVIDER_NAME = "gemini"
    DEFAULT_PATH = str(Path(".gemini") / "settings.json")

    def _entry_to_spec(self, name: str, entry: dict[str, Any]) -> ConnectionSpec:
        """Parse a Gemini entry: httpUrl is streamable HTTP, url is SSE."""
        if "httpUrl" in entry:
            return HttpSpec(url=entry["httpUrl"], headers=dict(entry.get("headers", {})), transport="http")
        if "url" in entry:
            return HttpSpec(url=entry["url"], headers=dict(entry.get("headers", {})), transport="sse")
        return stdio_spec(name, entry)

    def _spec_to_entry(self, spec: ConnectionSpec) -> dict[str, Any]:
        if isinstance(spec, StdioSpec):
            return stdio_entry(spec)
        url_key = "httpUrl" if spec.transport == "http" else "url"
        entry: dict[str, Any] = {url_key: spec.url}
        if spec.headers:
            entry["headers"] = dict(spec.headers)
        return entry

    def list_servers(self) -> dict[str, ProviderServer]:
        data = self._load()
        excluded = _excluded(data)
        result: dict[str, ProviderServer] = {}
        for name, entry in self._servers(data).items():
            if not isinstance(entry, dict):
                continue
            enabled = name not in excluded and not entry.get("disabled", False)
            result[name] = ProviderServer(
                name=name, spec=self._entry_to_spec(name, entry), state=Global(enabled)
            )
        return result

    def _rename(self, data: dict[str, Any], old_name: str, new_name: str) -> None:
        rename_key(data, self.SERVERS_KEY, old_name, new_name)
        mcp = data.get("mcp")
        if isinstance(mcp, dict):
            rename_in_list(mcp, "excluded", old_name, new_name)

    def _toggle(self, server_names: list[str], project: str | None, disabled: bool) -> WriteResult:
        self._check_project(project)
        original = self._load()
        updated = copy.deepcopy(original)
        servers = self._servers(updated)
        for name in server_names:
            _set_excluded(updated, name, disabled)
            entry = servers.get(name)
            if not disabled and isinstance(entry, dict):
                # Legacy per-entry flag would keep the server off
                entry.pop("disabled", None)
        return self._write(original, updated)

    def enable_servers(self, server_names: list[str], project: str | None = None) -> WriteResult:
        return self._toggle(server_names, project, disabled=False)

    def disable_servers(self, server_names: list[str], project: str | None = None) -> WriteResult:
        return self._toggle(server_names, project, disabled=True)

    def sync_servers(self, registry: Registry) -> WriteResult:
        """Install every unified server and recompute its exclusion.

        ABOUTME: Servers not in the unified config are left alone
        """
        original = self._load()
        updated = copy.deepcopy(original)
        servers = ensure_dict(updated, self.SERVERS_KEY)

        for name, record in registry.servers.items():
            self._put_entry(servers, name, record.spec)
            enabled = self.is_server_enabled_in_meta(record)
            _set_excluded(updated, name, not enabled)
            if enabled:
                servers[name].pop("disabled", None)

        if not servers and self.SERVERS_KEY not in original:
            del updated[self.SERVERS_KEY]
        return self._write(original, updated)
