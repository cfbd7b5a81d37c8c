# Claude Code provider adapter
import copy
from typing import Any

from mcpsync.models import (
    ConnectionSpec,
    Global,
    HttpSpec,
    PerProject,
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

DISABLED_KEY = "disabledMcpServers"
PROJECTS_KEY = "projects"


def _set_disabled(container: dict[str, Any], name: str, disabled: bool) -> None:
    """Add or remove a name in a disabledMcpServers list.

    ABOUTME: The list is only created when something is added to it
    """
    if disabled:
        names = ensure_list(container, DISABLED_KEY)
        if name not in names:
            names.append(name)
        return

    current = container.get(DISABLED_KEY)
    if isinstance(current, list) and name in current:
        current.remove(name)


def _is_disabled(container: dict[str, Any], name: str) -> bool:
    names = container.get(DISABLED_KEY)
    return isinstance(names, list) and name in names


class ClaudeProvider(BaseProvider):
    """Adapter for Claude Code (~/.claude.json).

    ABOUTME: Definitions live in top-level mcpServers
    ABOUTME: Enablement is tracked with disabledMcpServers, globally and per project
    """

    PROVIDER_NAME = "claude"
    DEFAULT_PATH = ".claude.json"

    def _entry_to_spec(self, name: str, entry: dict[str, Any]) -> ConnectionSpec:
        server_type = entry.get("type", "stdio" if "command" in entry else "http")
        if server_type == "stdio":
            return stdio_spec(name, entry)
        if server_type in ("http", "sse"):
            if "url" not in entry:
                raise ValueError(f"Server '{name}' missing required 'url' field for {server_type} type")
            return HttpSpec(url=entry["url"], headers=dict(entry.get("headers", {})), transport=server_type)
        raise ValueError(
            f"Server '{name}' has invalid type '{server_type}'. Must be 'stdio', 'http' or 'sse'."
        )

    def _spec_to_entry(self, spec: ConnectionSpec) -> dict[str, Any]:
        if isinstance(spec, StdioSpec):
            return {"type": "stdio", **stdio_entry(spec)}
        entry: dict[str, Any] = {"type": spec.transport, "url": spec.url}
        if spec.headers:
            entry["headers"] = dict(spec.headers)
        return entry

    def _projects(self, data: dict[str, Any]) -> dict[str, dict[str, Any]]:
        projects = data.get(PROJECTS_KEY)
        if not isinstance(projects, dict):
            return {}
        return {path: value for path, value in projects.items() if isinstance(value, dict)}

    def get_projects(self) -> list[str]:
        return list(self._projects(self._load()))

    def get_server_config(self, server_name: str) -> ConnectionSpec | None:
        """Look in the global servers first, then each project's own servers."""
        data = self._load()
        entry = self._servers(data).get(server_name)
        if isinstance(entry, dict):
            return self._entry_to_spec(server_name, entry)

        for project in self._projects(data).values():
            entry = self._servers(project).get(server_name)
            if isinstance(entry, dict):
                return self._entry_to_spec(server_name, entry)
        return None

    def list_servers(self) -> dict[str, ProviderServer]:
        data = self._load()
        projects = self._projects(data)
        result: dict[str, ProviderServer] = {}

        for name, entry in self._servers(data).items():
            if not isinstance(entry, dict):
                continue
            spec = self._entry_to_spec(name, entry)
            if projects:
                state: Global | PerProject = PerProject(
                    {path: not _is_disabled(project, name) for path, project in projects.items()}
                )
            else:
                state = Global(not _is_disabled(data, name))
            result[name] = ProviderServer(name=name, spec=spec, state=state)

        # Servers defined only inside a project
        for path, project in projects.items():
            for name, entry in self._servers(project).items():
                if name in result or not isinstance(entry, dict):
                    continue
                result[name] = ProviderServer(
                    name=name,
                    spec=self._entry_to_spec(name, entry),
                    state=PerProject({path: not _is_disabled(project, name)}),
                )
        return result

    def _has_server(self, data: dict[str, Any], server_name: str) -> bool:
        if server_name in self._servers(data):
            return True
        return any(server_name in self._servers(project) for project in self._projects(data).values())

    def _rename(self, data: dict[str, Any], old_name: str, new_name: str) -> None:
        """Rename definitions and disabled entries, globally and in every project."""
        rename_key(data, self.SERVERS_KEY, old_name, new_name)
        rename_in_list(data, DISABLED_KEY, old_name, new_name)
        for project_data in self._projects(data).values():
            rename_key(project_data, self.SERVERS_KEY, old_name, new_name)
            rename_in_list(project_data, DISABLED_KEY, old_name, new_name)

    def _toggle(self, server_names: list[str], project: str | None, disabled: bool) -> WriteResult:
        original = self._load()
        projects = self._projects(original)
        if project is not None and project not in projects:
            raise ValueError(f"Unknown project for {self.name}: {project}")

        updated = copy.deepcopy(original)
        updated_projects = self._projects(updated)
        for name in server_names:
            if project is None:
                _set_disabled(updated, name, disabled)
                for project_data in updated_projects.values():
                    _set_disabled(project_data, name, disabled)
            else:
                _set_disabled(updated_projects[project], name, disabled)
        return self._write(original, updated)

    def enable_servers(self, server_names: list[str], project: str | None = None) -> WriteResult:
        """Remove servers from disabledMcpServers.

        Args:
            server_names: Servers to enable
            project: Project path, or None for the global list and every project

        Raises:
            ValueError: If project isn't known to Claude
        """
        return self._toggle(server_names, project, disabled=False)

    def disable_servers(self, server_names: list[str], project: str | None = None) -> WriteResult:
        """Add servers to disabledMcpServers, see enable_servers()."""
        return self._toggle(server_names, project, disabled=True)

    def sync_servers(self, registry: Registry) -> WriteResult:
        """Install every unified server and apply its enabled flags.

        ABOUTME: Global and missing states apply to the global list and every project
        ABOUTME: PerProject states only touch projects Claude knows about
        """
        original = self._load()
        updated = copy.deepcopy(original)
        servers = ensure_dict(updated, self.SERVERS_KEY)
        projects = self._projects(updated)

        for name, record in registry.servers.items():
            self._put_entry(servers, name, record.spec)
            _set_disabled(updated, name, not self.is_server_enabled_in_meta(record))
            for path, project_data in projects.items():
                enabled = self.is_server_enabled_in_meta(record, path)
                _set_disabled(project_data, name, not enabled)

        if not servers and self.SERVERS_KEY not in original:
            del updated[self.SERVERS_KEY]
        return self._write(original, updated)
