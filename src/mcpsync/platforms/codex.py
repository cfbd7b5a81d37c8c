# Codex CLI provider adapter
from pathlib import Path
from typing import Any

import tomli
import tomli_w

from mcpsync.models import ConnectionSpec, HttpSpec, StdioSpec
from mcpsync.platforms.base import PresenceOnlyProvider, stdio_entry, stdio_spec


class CodexProvider(PresenceOnlyProvider):
    """Adapter for Codex CLI (~/.codex/config.toml).

    ABOUTME: Uses snake_case mcp_servers key (not mcpServers)
    ABOUTME: A server is enabled exactly when its table is present
    """

    PROVIDER_NAME = "codex"
    DEFAULT_PATH = str(Path(".codex") / "config.toml")
    SERVERS_KEY = "mcp_servers"

    def _load(self) -> dict[str, Any]:
        """Read config.toml, empty when missing.

        Raises:
            ValueError: If the file isn't valid TOML
        """
        if not self._config_path.exists():
            return {}

        try:
            with open(self._config_path, "rb") as f:
                return tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {self._config_path}: {e}") from e

    def _dump(self, data: dict[str, Any]) -> str:
        return tomli_w.dumps(data)

    def _entry_to_spec(self, name: str, entry: dict[str, Any]) -> ConnectionSpec:
        if "url" in entry:
            return HttpSpec(url=entry["url"], headers=dict(entry.get("http_headers", {})))
        return stdio_spec(name, entry)

    def _spec_to_entry(self, spec: ConnectionSpec) -> dict[str, Any]:
        if isinstance(spec, StdioSpec):
            return stdio_entry(spec)
        entry: dict[str, Any] = {"url": spec.url}
        if spec.headers:
            entry["http_headers"] = dict(spec.headers)
        return entry
