# Cursor provider adapter
from pathlib import Path
from typing import Any

from mcpsync.models import ConnectionSpec, HttpSpec, StdioSpec
from mcpsync.platforms.base import PresenceOnlyProvider, stdio_entry, stdio_spec


class CursorProvider(PresenceOnlyProvider):
    """Adapter for Cursor (~/.cursor/mcp.json).

    ABOUTME: A server is enabled exactly when its entry is present
    ABOUTME: Remote entries without a type are treated as SSE
    """

    PROVIDER_NAME = "cursor"
    DEFAULT_PATH = str(Path(".cursor") / "mcp.json")

    def _entry_to_spec(self, name: str, entry: dict[str, Any]) -> ConnectionSpec:
        if "url" in entry and "command" not in entry:
            transport = "http" if entry.get("type") == "http" else "sse"
            return HttpSpec(url=entry["url"], headers=dict(entry.get("headers", {})), transport=transport)
        return stdio_spec(name, entry)

    def _spec_to_entry(self, spec: ConnectionSpec) -> dict[str, Any]:
        if isinstance(spec, StdioSpec):
            return stdio_entry(spec)
        entry: dict[str, Any] = {"url": spec.url}
        if spec.transport == "http":
            entry["type"] = "http"
        if spec.headers:
            entry["headers"] = dict(spec.headers)
        return entry
