# Provider adapter base classes and shared helpers
import copy
import json
import logging
from pathlib import Path
from typing import Any, Callable, cast

from mcpsync.models import (
    ConnectionSpec,
    Global,
    ProviderServer,
    Registry,
    ServerRecord,
    StdioSpec,
    WriteResult,
)
from mcpsync.prompts import confirm as prompt_confirm
from mcpsync.utils.backup import create_backup, get_backup_dir
from mcpsync.utils.diff import show_diff

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[str], bool]


def read_json_file(path: Path) -> dict[str, Any]:
    """Read JSON file with error handling.

    ABOUTME: Returns empty dict if file doesn't exist
    ABOUTME: Raises ValueError for invalid JSON or a non-object root
    """
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            result = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(result, dict):
        raise ValueError(f"Expected a JSON object at the top of {path}")
    return cast(dict[str, Any], result)


def dump_json(data: dict[str, Any]) -> str:
    """Serialize a provider file with 2-space indentation and a trailing newline.

    ABOUTME: Keeps key order so untouched parts of user files stay put
    """
    return json.dumps(data, indent=2) + "\n"


def ensure_dict(container: dict[str, Any], key: str) -> dict[str, Any]:
    """Return container[key], creating an empty object when it is absent.

    Raises:
        ValueError: If the existing value isn't an object
    """
    value = container.setdefault(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Expected '{key}' to be an object, got {type(value).__name__}")
    return value


def ensure_list(container: dict[str, Any], key: str) -> list[Any]:
    """Return container[key], creating an empty list when it is absent.

    Raises:
        ValueError: If the existing value isn't a list
    """
    value = container.setdefault(key, [])
    if not isinstance(value, list):
        raise ValueError(f"Expected '{key}' to be a list, got {type(value).__name__}")
    return value


def rename_key(container: dict[str, Any], key: str, old_name: str, new_name: str) -> None:
    """Rename an entry of container[key] in place of the old one.

    ABOUTME: An entry already stored under new_name is replaced
    """
    section = container.get(key)
    if not isinstance(section, dict) or old_name not in section:
        return
    container[key] = {
        (new_name if name == old_name else name): value
        for name, value in section.items()
        if name != new_name
    }


def rename_in_list(container: dict[str, Any], key: str, old_name: str, new_name: str) -> None:
    """Carry old_name's membership of a name list over to new_name."""
    names = container.get(key)
    if not isinstance(names, list):
        return
    renamed = [new_name if name == old_name else name for name in names if name != new_name]
    if renamed != names:
        container[key] = renamed


def stdio_entry(spec: StdioSpec) -> dict[str, Any]:
    """Common command/args/env shape, env omitted when empty."""
    entry: dict[str, Any] = {"command": spec.command, "args": list(spec.args)}
    if spec.env:
        entry["env"] = dict(spec.env)
    return entry


def stdio_spec(name: str, entry: dict[str, Any]) -> StdioSpec:
    if "command" not in entry:
        raise ValueError(f"Server '{name}' missing required 'command' field")
    return StdioSpec(
        command=entry["command"],
        args=list(entry.get("args", [])),
        env=dict(entry.get("env", {})),
    )


class BaseProvider:
    """Shared plumbing for provider adapters.

    ABOUTME: Subclasses supply the file format and server entry shape
    ABOUTME: Every write goes through _write(): diff, confirm, backup, write

    Args:
        config_path: Provider config file, defaults to DEFAULT_PATH under home
        confirm: Called with a question before writing, defaults to a terminal prompt
        backup_dir: Where backups go, defaults to ~/.mcpsync/backups
    """

    PROVIDER_NAME = ""
    DEFAULT_PATH = ""
    SERVERS_KEY = "mcpServers"

    def __init__(
        self,
        config_path: Path | None = None,
        confirm: ConfirmFn | None = None,
        backup_dir: Path | None = None,
    ) -> None:
        self._config_path = config_path if config_path else Path.home() / self.DEFAULT_PATH
        self._confirm = confirm if confirm else prompt_confirm
        self._backup_dir = backup_dir

    @property
    def name(self) -> str:
        return self.PROVIDER_NAME

    @property
    def config_path(self) -> Path | None:
        """Path to provider config file, None when it doesn't exist."""
        return self._config_path if self._config_path.exists() else None

    def config_exists(self) -> bool:
        return self._config_path.exists()

    def get_projects(self) -> list[str]:
        return []

    def supports_disabled_state(self) -> bool:
        return True

    def is_server_enabled_in_meta(self, record: ServerRecord, project: str | None = None) -> bool:
        """Read this provider's desired state from the record.

        ABOUTME: No entry means disabled
        ABOUTME: PerProject without a project means enabled in any project
        """
        state = record.meta.enabled.get(self.name)
        if state is None:
            return False
        if isinstance(state, Global):
            return state.enabled
        if project is None:
            return state.is_enabled_anywhere()
        return state.projects.get(project, False)

    # File format hooks

    def _load(self) -> dict[str, Any]:
        return read_json_file(self._config_path)

    def _dump(self, data: dict[str, Any]) -> str:
        return dump_json(data)

    # Server entry hooks

    def _entry_to_spec(self, name: str, entry: dict[str, Any]) -> ConnectionSpec:
        raise NotImplementedError

    def _spec_to_entry(self, spec: ConnectionSpec) -> dict[str, Any]:
        raise NotImplementedError

    def _servers(self, data: dict[str, Any]) -> dict[str, Any]:
        servers = data.get(self.SERVERS_KEY)
        return servers if isinstance(servers, dict) else {}

    def _put_entry(self, servers: dict[str, Any], name: str, spec: ConnectionSpec) -> None:
        """Store a server entry, leaving an equivalent existing entry untouched."""
        existing = servers.get(name)
        if isinstance(existing, dict):
            try:
                if self._entry_to_spec(name, existing) == spec:
                    return
            except ValueError:
                pass
        servers[name] = self._spec_to_entry(spec)

    def _check_project(self, project: str | None) -> None:
        if project is not None and project not in self.get_projects():
            raise ValueError(f"Unknown project for {self.name}: {project}")

    def get_server_config(self, server_name: str) -> ConnectionSpec | None:
        entry = self._servers(self._load()).get(server_name)
        if not isinstance(entry, dict):
            return None
        return self._entry_to_spec(server_name, entry)

    def install_server(self, server_name: str, spec: ConnectionSpec) -> WriteResult:
        original = self._load()
        updated = copy.deepcopy(original)
        servers = ensure_dict(updated, self.SERVERS_KEY)
        self._put_entry(servers, server_name, spec)
        return self._write(original, updated)

    def _has_server(self, data: dict[str, Any], server_name: str) -> bool:
        return server_name in self._servers(data)

    def _rename(self, data: dict[str, Any], old_name: str, new_name: str) -> None:
        rename_key(data, self.SERVERS_KEY, old_name, new_name)

    def rename_server(self, old_name: str, new_name: str) -> WriteResult:
        """Move a server entry to a new name in one write.

        ABOUTME: The enabled state moves with it, an entry under new_name is replaced
        ABOUTME: NoChanges when the provider doesn't have old_name
        """
        original = self._load()
        if not self._has_server(original, old_name):
            logger.debug(f"{self.name}: '{old_name}' not installed, nothing to rename")
            return WriteResult.NO_CHANGES

        updated = copy.deepcopy(original)
        self._rename(updated, old_name, new_name)
        return self._write(original, updated)

    def _write(self, original: dict[str, Any], updated: dict[str, Any]) -> WriteResult:
        """Write updated provider data after showing a diff and asking.

        ABOUTME: Equal data means NoChanges and nothing touches the disk
        ABOUTME: A declined confirmation leaves the file exactly as it was

        Returns:
            APPLIED, REJECTED, or NO_CHANGES
        """
        if original == updated:
            logger.debug(f"{self.name}: no changes for {self._config_path}")
            return WriteResult.NO_CHANGES

        new_text = self._dump(updated)
        show_diff(self._dump(original), new_text, str(self._config_path))

        if not self._confirm(f"Apply changes to {self._config_path}?"):
            logger.info(f"{self.name}: changes rejected, {self._config_path} left untouched")
            return WriteResult.REJECTED

        if self._config_path.exists():
            backup_dir = self._backup_dir if self._backup_dir else get_backup_dir()
            create_backup(self._config_path, backup_dir, label=self.name)

        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        self._config_path.write_text(new_text, encoding="utf-8")
        logger.info(f"Configuration written to {self._config_path}")
        return WriteResult.APPLIED


class PresenceOnlyProvider(BaseProvider):
    """Provider whose only notion of enabled is the entry being present.

    ABOUTME: Disabling removes the definition, enabling requires it installed
    ABOUTME: Has no projects, project arguments must be None
    """

    def supports_disabled_state(self) -> bool:
        return False

    def list_servers(self) -> dict[str, ProviderServer]:
        result: dict[str, ProviderServer] = {}
        for name, entry in self._servers(self._load()).items():
            if not isinstance(entry, dict):
                continue
            try:
                spec = self._entry_to_spec(name, entry)
            except ValueError as e:
                logger.warning(f"{self.name}: skipping server '{name}': {e}")
                continue
            result[name] = ProviderServer(name=name, spec=spec, state=Global(True))
        return result

    def enable_servers(self, server_names: list[str], project: str | None = None) -> WriteResult:
        """Presence already means enabled, so only check every server is installed.

        Raises:
            ValueError: If a server isn't installed or a project was given
        """
        self._check_project(project)
        servers = self._servers(self._load())
        missing = [name for name in server_names if name not in servers]
        if missing:
            raise ValueError(
                f"Cannot enable {', '.join(missing)} in {self.name}: not installed"
            )
        return WriteResult.NO_CHANGES

    def disable_servers(self, server_names: list[str], project: str | None = None) -> WriteResult:
        self._check_project(project)
        original = self._load()
        updated = copy.deepcopy(original)
        servers = self._servers(updated)
        for name in server_names:
            servers.pop(name, None)
        return self._write(original, updated)

    def sync_servers(self, registry: Registry) -> WriteResult:
        """Add enabled servers and remove explicitly disabled ones.

        ABOUTME: Servers never toggled for this provider are left alone
        """
        original = self._load()
        updated = copy.deepcopy(original)
        servers = ensure_dict(updated, self.SERVERS_KEY)

        for name, record in registry.servers.items():
            if self.name not in record.meta.enabled:
                continue
            if self.is_server_enabled_in_meta(record):
                self._put_entry(servers, name, record.spec)
            else:
                servers.pop(name, None)

        if not servers and self.SERVERS_KEY not in original:
            del updated[self.SERVERS_KEY]
        return self._write(original, updated)
