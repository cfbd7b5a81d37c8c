# Unified config loading and saving for mcpsync
import json
import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Any

from mcpsync.models import (
    ConnectionSpec,
    EnabledState,
    Global,
    HttpSpec,
    PerProject,
    Registry,
    ServerMeta,
    ServerRecord,
    StdioSpec,
)
from mcpsync.utils.backup import create_backup, get_backup_dir

logger = logging.getLogger(__name__)

# ABOUTME: Default config directory in user's home
CONFIG_DIR_NAME = ".mcpsync"

# ABOUTME: Unified config file name (JSON format)
CONFIG_FILE_NAME = "mcp.json"

# ABOUTME: Environment variable that overrides the unified config location
CONFIG_ENV_VAR = "MCPSYNC_CONFIG"

SERVERS_KEY = "mcpServers"
MIRROR_KEY = "enabledMcpServers"
META_KEY = "_meta"

# ABOUTME: Entry keys that make up a connection spec, per entry shape
# ABOUTME: Anything else in an entry is kept verbatim in ServerRecord.extra
STDIO_FIELDS = ("command", "args", "env")
URL_FIELDS = ("type", "url", "headers")
HTTP_URL_FIELDS = ("type", "httpUrl", "headers")
SPEC_FIELDS = frozenset(STDIO_FIELDS + URL_FIELDS + HTTP_URL_FIELDS)


class UnifiedStoreError(Exception):
    """The unified config is missing or cannot be parsed."""


def get_config_path() -> Path:
    """Return the path to the unified config file.

    ABOUTME: Returns ~/.mcpsync/mcp.json unless MCPSYNC_CONFIG is set
    ABOUTME: File may not exist yet

    Returns:
        Path to config file
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def strip_meta(record: ServerRecord) -> ServerRecord:
    """Return a copy of a record without its `_meta` bookkeeping.

    ABOUTME: All code must use this before handing a record to a provider
    """
    return replace(record, meta=ServerMeta())


def _spec_fields(data: dict[str, Any]) -> tuple[str, ...]:
    if "url" in data:
        return URL_FIELDS
    if "httpUrl" in data:
        return HTTP_URL_FIELDS
    return STDIO_FIELDS


def parse_spec(name: str, data: dict[str, Any]) -> ConnectionSpec:
    """Build a connection spec from a unified config entry.

    ABOUTME: `url` honours `type` (http or sse), `httpUrl` is always http

    Raises:
        ValueError: If neither a command nor a url is present
    """
    if "url" in data:
        transport = data.get("type", "http")
        if transport not in ("http", "sse"):
            raise ValueError(
                f"Server '{name}' has invalid type '{transport}' for a url. Must be 'http' or 'sse'."
            )
        return HttpSpec(url=data["url"], headers=dict(data.get("headers", {})), transport=transport)

    if "httpUrl" in data:
        transport = data.get("type", "http")
        if transport != "http":
            raise ValueError(
                f"Server '{name}' has invalid type '{transport}' for an httpUrl. Must be 'http'."
            )
        return HttpSpec(url=data["httpUrl"], headers=dict(data.get("headers", {})), transport="http")

    if "command" in data:
        return StdioSpec(
            command=data["command"],
            args=list(data.get("args", [])),
            env=dict(data.get("env", {})),
        )

    raise ValueError(f"Server '{name}' needs either a 'command', a 'url' or an 'httpUrl' field")


def spec_to_data(spec: ConnectionSpec) -> dict[str, Any]:
    """Serialize a connection spec for the unified config."""
    if isinstance(spec, StdioSpec):
        data: dict[str, Any] = {"command": spec.command}
        if spec.args:
            data["args"] = list(spec.args)
        if spec.env:
            data["env"] = dict(spec.env)
        return data

    data = {"type": spec.transport, "url": spec.url}
    if spec.headers:
        data["headers"] = dict(spec.headers)
    return data


def parse_enabled_state(value: Any) -> EnabledState:
    """Turn a `_meta.enabled` JSON value into an EnabledState.

    ABOUTME: Booleans are Global, objects of booleans are PerProject
    """
    if isinstance(value, bool):
        return Global(value)
    if isinstance(value, dict) and all(isinstance(flag, bool) for flag in value.values()):
        return PerProject(dict(value))
    raise ValueError(f"Invalid enabled state: {value!r}")


def dump_enabled_state(state: EnabledState) -> bool | dict[str, bool]:
    if isinstance(state, Global):
        return state.enabled
    return dict(state.projects)


def record_from_data(name: str, data: dict[str, Any]) -> ServerRecord:
    spec = parse_spec(name, data)

    meta_data = data.get(META_KEY)
    if meta_data is None:
        meta_data = {}
    if not isinstance(meta_data, dict):
        raise ValueError(f"Server '{name}' has a non-object '{META_KEY}'")
    enabled_data = meta_data.get("enabled", {})
    if not isinstance(enabled_data, dict):
        raise ValueError(f"Server '{name}' has a non-object '{META_KEY}.enabled'")

    enabled = {
        provider: parse_enabled_state(value) for provider, value in enabled_data.items()
    }
    meta_extra = {key: value for key, value in meta_data.items() if key != "enabled"}

    spec_fields = _spec_fields(data)
    extra = {
        key: value
        for key, value in data.items()
        if key not in spec_fields and key != META_KEY
    }
    return ServerRecord(
        name=name,
        spec=spec,
        meta=ServerMeta(enabled=enabled, extra=meta_extra),
        extra=extra,
    )


def record_to_data(record: ServerRecord) -> dict[str, Any]:
    """Serialize a record: spec fields first, then kept extras, then `_meta`."""
    data = spec_to_data(record.spec)
    for key, value in record.extra.items():
        data.setdefault(key, value)

    meta: dict[str, Any] = dict(record.meta.extra)
    if record.meta.enabled:
        meta["enabled"] = {
            provider: dump_enabled_state(state)
            for provider, state in record.meta.enabled.items()
        }
    if meta:
        data[META_KEY] = meta
    return data


def registry_to_data(registry: Registry) -> dict[str, Any]:
    """Serialize the whole registry, regenerating the enabledMcpServers mirror."""
    data: dict[str, Any] = dict(registry.extra)
    data[SERVERS_KEY] = {
        name: record_to_data(record) for name, record in registry.servers.items()
    }
    data[MIRROR_KEY] = {
        name: {
            provider: dump_enabled_state(state)
            for provider, state in record.meta.enabled.items()
        }
        for name, record in registry.servers.items()
        if record.meta.enabled
    }
    return data


def load_registry(path: Path) -> Registry:
    """Load and parse the unified config from a JSON file.

    ABOUTME: Fail-fast, a missing or corrupt store is never replaced silently
    ABOUTME: Merges the enabledMcpServers mirror into records lacking `_meta`

    Args:
        path: Path to the unified config file

    Returns:
        Parsed Registry

    Raises:
        UnifiedStoreError: If the file is missing, not JSON, or malformed
    """
    if not path.exists():
        raise UnifiedStoreError(f"Unified config not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise UnifiedStoreError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise UnifiedStoreError(f"Cannot read {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get(SERVERS_KEY), dict):
        raise UnifiedStoreError(f"Missing required '{SERVERS_KEY}' object in {path}")

    servers: dict[str, ServerRecord] = {}
    for server_name, server_data in data[SERVERS_KEY].items():
        if not isinstance(server_data, dict):
            raise UnifiedStoreError(f"Server '{server_name}' in {path} is not an object")
        try:
            servers[server_name] = record_from_data(server_name, server_data)
        except ValueError as e:
            raise UnifiedStoreError(f"{path}: {e}") from e

    # Older files may only carry the root-level mirror
    mirror = data.get(MIRROR_KEY)
    if not isinstance(mirror, dict):
        mirror = {}
    for server_name, states in mirror.items():
        record = servers.get(server_name)
        if record is None or not isinstance(states, dict):
            continue
        for provider, value in states.items():
            if provider in record.meta.enabled:
                continue
            try:
                record.meta.enabled[provider] = parse_enabled_state(value)
            except ValueError as e:
                raise UnifiedStoreError(f"{path}: server '{server_name}': {e}") from e

    extra = {
        key: value for key, value in data.items() if key not in (SERVERS_KEY, MIRROR_KEY)
    }
    return Registry(servers=servers, extra=extra)


def save_registry(path: Path, registry: Registry) -> bool:
    """Save the registry to the unified config file.

    ABOUTME: Skips the write when serialized content is unchanged
    ABOUTME: Backs up the previous file before overwriting it

    Args:
        path: Path to write the unified config
        registry: Registry to save

    Returns:
        True if the file was written, False if it was already up to date

    Raises:
        UnifiedStoreError: If the file cannot be written
    """
    new_content = json.dumps(registry_to_data(registry), indent=2) + "\n"

    try:
        if path.exists():
            if path.read_text(encoding="utf-8") == new_content:
                logger.debug("Unified config %s already up to date", path)
                return False
            create_backup(path, get_backup_dir(), label="unified")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(new_content, encoding="utf-8")
    except OSError as e:
        raise UnifiedStoreError(f"Cannot write {path}: {e}") from e

    logger.info("Unified config written to %s", path)
    return True


def add_server_to_config(path: Path, record: ServerRecord) -> bool:
    """Add a server to the unified config.

    ABOUTME: Creates a new config if the file doesn't exist
    ABOUTME: Replaces the definition if the name exists, keeping its `_meta`
    ABOUTME: and any fields outside the connection spec

    Returns:
        True if an existing server was replaced
    """
    registry = load_registry(path) if path.exists() else Registry()

    existing = registry.servers.get(record.name)
    if existing is not None:
        kept = {key: value for key, value in existing.extra.items() if key not in SPEC_FIELDS}
        kept.update(record.extra)
        registry.servers[record.name] = ServerRecord(
            name=record.name, spec=record.spec, meta=existing.meta, extra=kept
        )
    else:
        registry.servers[record.name] = record

    save_registry(path, registry)
    return existing is not None


def remove_server_from_config(path: Path, server_name: str) -> bool:
    """Remove a server from the unified config.

    ABOUTME: Provider files are never touched here

    Returns:
        True if server was removed, False if not found

    Raises:
        UnifiedStoreError: If config file is missing or invalid
    """
    registry = load_registry(path)

    if server_name not in registry.servers:
        return False

    del registry.servers[server_name]
    save_registry(path, registry)
    return True
