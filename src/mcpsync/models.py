# Core data models for mcpsync
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Literal, Protocol, Union, runtime_checkable


@dataclass(frozen=True)
class StdioSpec:
    """Connection spec for a server launched as a local process.

    ABOUTME: Uses frozen dataclass to prevent accidental mutation
    ABOUTME: Only includes fields portable across all providers
    """
    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)

    @property
    def transport(self) -> Literal["stdio"]:
        return "stdio"


@dataclass(frozen=True)
class HttpSpec:
    """Connection spec for a remote server reached over HTTP or SSE."""
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    transport: Literal["http", "sse"] = "http"


# ABOUTME: Exactly one transport shape per server
ConnectionSpec = Union[StdioSpec, HttpSpec]


@dataclass(frozen=True)
class Global:
    """Enabled flag that applies to every project a provider knows about."""
    enabled: bool


@dataclass(frozen=True)
class PerProject:
    """Independent enabled flag per project path.

    ABOUTME: Never mutated in place, updates build a new instance
    """
    projects: dict[str, bool] = field(default_factory=dict)

    def is_enabled_anywhere(self) -> bool:
        return any(self.projects.values())


EnabledState = Union[Global, PerProject]


@dataclass
class ServerMeta:
    """Cross-provider bookkeeping stored under `_meta` in the unified config.

    ABOUTME: Keyed by provider name, absent key means never synced there
    ABOUTME: Other `_meta` keys are kept in `extra` and written back
    """
    enabled: dict[str, EnabledState] = field(default_factory=dict)
    extra: dict[str, object] = field(default_factory=dict)


@dataclass
class ServerRecord:
    """One named server in the unified config plus its `_meta` envelope.

    ABOUTME: Fields outside the connection spec (cwd, timeout, description...)
    ABOUTME: live in `extra` so a load/save round trip never drops them
    """
    name: str
    spec: ConnectionSpec
    meta: ServerMeta = field(default_factory=ServerMeta)
    extra: dict[str, object] = field(default_factory=dict)


@dataclass
class Registry:
    """Full contents of the unified config.

    ABOUTME: Servers dict uses name as key for easy lookup
    ABOUTME: Unknown top-level keys are kept in `extra` and written back
    """
    servers: dict[str, ServerRecord] = field(default_factory=dict)
    extra: dict[str, object] = field(default_factory=dict)


class WriteResult(Enum):
    """Outcome of a provider-facing mutation."""
    APPLIED = "applied"
    REJECTED = "rejected"
    NO_CHANGES = "no_changes"


def merge_results(results: Iterable[WriteResult]) -> WriteResult:
    """Collapse several write outcomes into one.

    ABOUTME: Rejected wins over Applied, Applied wins over NoChanges
    ABOUTME: An empty sequence counts as NoChanges
    """
    merged = WriteResult.NO_CHANGES
    for result in results:
        if result is WriteResult.REJECTED:
            return WriteResult.REJECTED
        if result is WriteResult.APPLIED:
            merged = WriteResult.APPLIED
    return merged


@dataclass(frozen=True)
class ProjectChoice:
    """A project scope picked for a toggle, `project_path=None` means all projects."""
    project_path: str | None
    display_name: str


GLOBAL_CHOICE = ProjectChoice(project_path=None, display_name="Global (all projects)")


@dataclass(frozen=True)
class ProviderServer:
    """A server as currently found in a provider's own config file."""
    name: str
    spec: ConnectionSpec
    state: EnabledState


@runtime_checkable
class ProviderAdapter(Protocol):
    """Protocol for provider-specific config adapters.

    ABOUTME: Defines interface all provider adapters must implement
    ABOUTME: Uses @runtime_checkable for isinstance() support
    """

    @property
    def name(self) -> str:
        """Provider identifier used as the key in `_meta.enabled`."""
        ...

    @property
    def config_path(self) -> Path | None:
        """Provider config file, None when it doesn't exist."""
        ...

    def config_exists(self) -> bool:
        """Whether the provider's config file is present."""
        ...

    def get_projects(self) -> list[str]:
        """Project paths the provider partitions its config by, empty if none."""
        ...

    def get_server_config(self, server_name: str) -> ConnectionSpec | None:
        """Current definition of a server in the provider, or None."""
        ...

    def list_servers(self) -> dict[str, ProviderServer]:
        """Every server in the provider with its current enabled state."""
        ...

    def install_server(self, server_name: str, spec: ConnectionSpec) -> WriteResult:
        """Add or overwrite a server definition."""
        ...

    def enable_servers(self, server_names: list[str], project: str | None = None) -> WriteResult:
        """Enable servers in one project scope, or everywhere when project is None."""
        ...

    def disable_servers(self, server_names: list[str], project: str | None = None) -> WriteResult:
        """Disable servers in one project scope, or everywhere when project is None."""
        ...

    def rename_server(self, old_name: str, new_name: str) -> WriteResult:
        """Move a server to a new name, keeping its definition and enabled state."""
        ...

    def sync_servers(self, registry: Registry) -> WriteResult:
        """Reconcile the whole provider file against `_meta.enabled[name]`."""
        ...

    def supports_disabled_state(self) -> bool:
        """False when presence in the file is the only way to be enabled."""
        ...

    def is_server_enabled_in_meta(self, record: ServerRecord, project: str | None = None) -> bool:
        """Desired enabled value for this provider according to the record's `_meta`."""
        ...
