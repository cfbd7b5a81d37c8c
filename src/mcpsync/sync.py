# Reconciliation orchestration for mcpsync
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path

from mcpsync.config import load_registry, save_registry, strip_meta
from mcpsync.models import (
    GLOBAL_CHOICE,
    EnabledState,
    Global,
    PerProject,
    ProjectChoice,
    ProviderAdapter,
    Registry,
    ServerMeta,
    ServerRecord,
    WriteResult,
    merge_results,
)
from mcpsync.prompts import Selector, confirm

logger = logging.getLogger(__name__)

# Snapshot of _meta.enabled[provider] per server, None when the key was absent
MetaSnapshot = dict[str, EnabledState | None]


@dataclass
class SyncReport:
    """Report from a toggle, sync or import run.

    ABOUTME: Tracks the merged WriteResult per provider
    ABOUTME: Provider errors are recorded here instead of raised
    """
    providers_total: int = 0
    results: dict[str, WriteResult] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    imported: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    failed: set[str] = field(default_factory=set)

    def add_result(self, provider_name: str, result: WriteResult) -> None:
        """Record a write outcome, merging with any earlier one for the provider."""
        previous = self.results.get(provider_name)
        if previous is not None:
            result = merge_results([previous, result])
        self.results[provider_name] = result

    def add_error(self, provider_name: str, error: str) -> None:
        """Record a provider failure.

        ABOUTME: Errors are non-fatal, the run continues with other providers
        """
        self.errors.append(f"{provider_name}: {error}")
        self.failed.add(provider_name)

    @property
    def all_failed(self) -> bool:
        return self.providers_total > 0 and len(self.failed) >= self.providers_total

    @property
    def result(self) -> WriteResult:
        return merge_results(self.results.values())


def apply_toggle(
    state: EnabledState | None,
    enabled: bool,
    projects: list[str],
    choices: list[ProjectChoice],
) -> EnabledState:
    """Compute a provider's new EnabledState after a toggle.

    ABOUTME: Providers without projects always get a Global value
    ABOUTME: A Global value is broadcast to every project before a scoped change

    Args:
        state: Current value of _meta.enabled[provider], None if absent
        enabled: Value being applied
        projects: Projects the provider currently reports
        choices: Targeted scopes, a None project_path means every project

    Returns:
        New EnabledState

    Examples:
        >>> apply_toggle(Global(True), False, ["/a", "/b"], [ProjectChoice("/a", "/a")])
        PerProject(projects={'/a': False, '/b': True})
    """
    if not projects:
        return Global(enabled)

    if isinstance(state, PerProject):
        flags = dict(state.projects)
    elif isinstance(state, Global):
        flags = {project: state.enabled for project in projects}
    else:
        flags = {}

    for choice in choices:
        if choice.project_path is None:
            for project in projects:
                flags[project] = enabled
        else:
            flags[choice.project_path] = enabled

    return PerProject(flags)


def _restore(registry: Registry, provider_name: str, snapshot: MetaSnapshot) -> None:
    for server_name, state in snapshot.items():
        record = registry.servers.get(server_name)
        if record is None:
            continue
        if state is None:
            record.meta.enabled.pop(provider_name, None)
        else:
            record.meta.enabled[provider_name] = state


def _select_providers(
    providers: list[ProviderAdapter],
    selector: Selector | None,
    provider_names: list[str] | None,
    message: str,
) -> list[ProviderAdapter]:
    """Keep providers whose config exists, then filter by name or selection."""
    available: list[ProviderAdapter] = []
    for provider in providers:
        if provider.config_exists():
            available.append(provider)
        elif provider_names is not None and provider.name in provider_names:
            logger.warning(f"{provider.name}: config file not found, skipping")
        else:
            logger.debug(f"{provider.name}: config file not found, skipping")

    if provider_names is not None:
        return [provider for provider in available if provider.name in provider_names]

    if selector is not None and available:
        chosen = selector.select_providers([provider.name for provider in available], message)
        return [provider for provider in available if provider.name in chosen]

    return available


def _resolve_choices(
    provider: ProviderAdapter,
    projects: list[str],
    explicit: list[str] | None,
    selector: Selector | None,
) -> list[ProjectChoice]:
    """Work out which project scopes a toggle targets for one provider.

    ABOUTME: Explicit paths on a provider without projects fall back to global
    ABOUTME: Non-interactive runs broadcast to every project
    """
    if explicit:
        if not projects:
            logger.warning(
                f"{provider.name} has no projects, applying to global scope instead of "
                f"{', '.join(explicit)}"
            )
            return [GLOBAL_CHOICE]

        choices = []
        for path in explicit:
            if path in projects:
                choices.append(ProjectChoice(path, path))
            else:
                logger.warning(f"Project {path} not found in {provider.name}, skipping")
        return choices

    if not projects or selector is None:
        return [GLOBAL_CHOICE]

    return selector.select_projects(provider.name, projects)


def _scope_label(choice: ProjectChoice) -> str:
    return "globally" if choice.project_path is None else f"for {choice.display_name}"


def _toggle_provider(
    enabled: bool,
    server_names: list[str],
    provider: ProviderAdapter,
    registry: Registry,
    choices: list[ProjectChoice],
    projects: list[str],
    snapshot: MetaSnapshot,
    report: SyncReport,
) -> WriteResult:
    """Run steps for one provider, one project scope at a time.

    ABOUTME: snapshot holds the _meta values from before the scope being written
    """
    batch: list[str] = []

    for server_name in server_names:
        record = registry.servers.get(server_name)
        installed = provider.get_server_config(server_name)

        if record is None:
            if not enabled:
                logger.warning(f"Server '{server_name}' not found in unified config, nothing to disable")
                report.skipped.append(server_name)
                continue
            if installed is None:
                logger.warning(
                    f"Server '{server_name}' not found in unified config or {provider.name}, skipping"
                )
                report.skipped.append(server_name)
                continue
            record = ServerRecord(name=server_name, spec=installed, meta=ServerMeta())
            registry.servers[server_name] = record
            report.imported.append(server_name)
            logger.info(f"Imported '{server_name}' from {provider.name} into unified config")

        if enabled and installed is None:
            install_result = provider.install_server(server_name, strip_meta(record).spec)
            if install_result is WriteResult.REJECTED:
                logger.warning(f"Install of '{server_name}' in {provider.name} rejected, skipping")
                report.skipped.append(server_name)
                continue
            report.add_result(provider.name, install_result)

        batch.append(server_name)

    if not batch:
        return WriteResult.NO_CHANGES

    action = "Enabled" if enabled else "Disabled"
    results: list[WriteResult] = []
    for choice in choices:
        # Scopes already written stay recorded, only this one is rolled back
        snapshot.clear()
        for server_name in batch:
            snapshot[server_name] = registry.servers[server_name].meta.enabled.get(provider.name)

        for server_name in batch:
            record = registry.servers[server_name]
            record.meta.enabled[provider.name] = apply_toggle(
                record.meta.enabled.get(provider.name), enabled, projects, [choice]
            )

        if enabled:
            result = provider.enable_servers(batch, choice.project_path)
        else:
            result = provider.disable_servers(batch, choice.project_path)
        results.append(result)

        if result is WriteResult.REJECTED:
            logger.warning(f"Changes to {provider.name} rejected, restoring previous state")
            _restore(registry, provider.name, snapshot)
            break
        if result is WriteResult.APPLIED:
            logger.info(
                f"✓ {action} {len(batch)} server(s) {_scope_label(choice)} in {provider.name}"
            )
        else:
            logger.info(
                f"{provider.name}: {len(batch)} server(s) already {action.lower()} "
                f"{_scope_label(choice)}"
            )

    return merge_results(results)


def toggle_servers(
    enabled: bool,
    server_names: list[str],
    providers: list[ProviderAdapter],
    config_path: Path,
    selector: Selector | None = None,
    provider_names: list[str] | None = None,
    projects: list[str] | None = None,
) -> SyncReport:
    """Enable or disable servers across providers and record it in _meta.

    ABOUTME: Imports unknown servers from a provider when enabling
    ABOUTME: Rolls back a provider's _meta changes when its write is rejected or fails
    ABOUTME: Saves the unified config exactly once at the end

    Args:
        enabled: True to enable, False to disable
        server_names: Servers to toggle, empty to pick interactively
        providers: Candidate provider adapters
        config_path: Unified config file
        selector: Interactive selection source, None for non-interactive runs
        provider_names: Restrict to these providers without asking
        projects: Explicit project paths to target

    Returns:
        SyncReport with the merged result per provider

    Raises:
        UnifiedStoreError: If the unified config can't be loaded or saved
    """
    registry = load_registry(config_path)
    report = SyncReport()

    if not server_names:
        if not registry.servers:
            logger.warning("No servers found in unified config")
            return report
        if selector is None:
            logger.warning("No servers given")
            return report
        action = "enable" if enabled else "disable"
        server_names = selector.select_servers(
            sorted(registry.servers), f"Select servers to {action}:"
        )
        if not server_names:
            logger.info("No servers selected")
            return report

    targets = _select_providers(providers, selector, provider_names, "Select providers:")
    report.providers_total = len(targets)
    if not targets:
        logger.warning("No providers with an existing config file were selected")

    interactive = selector if provider_names is None else None

    for provider in targets:
        snapshot: MetaSnapshot = {}
        try:
            provider_projects = provider.get_projects()
            choices = _resolve_choices(provider, provider_projects, projects, interactive)
            if not choices:
                logger.warning(f"No project scope selected for {provider.name}, skipping")
                continue

            result = _toggle_provider(
                enabled,
                server_names,
                provider,
                registry,
                choices,
                provider_projects,
                snapshot,
                report,
            )
            report.add_result(provider.name, result)
        except Exception as e:
            _restore(registry, provider.name, snapshot)
            logger.error(f"{provider.name}: {e}")
            report.add_error(provider.name, str(e))

    save_registry(config_path, registry)
    return report


def sync_servers(
    providers: list[ProviderAdapter],
    config_path: Path,
    selector: Selector | None = None,
    provider_names: list[str] | None = None,
) -> SyncReport:
    """Bring provider files in line with the unified config.

    ABOUTME: Installs missing servers first, skipping disabled ones on
    ABOUTME: presence-only providers, then calls sync_servers once per provider

    Raises:
        UnifiedStoreError: If the unified config can't be loaded or saved
    """
    registry = load_registry(config_path)
    targets = _select_providers(providers, selector, provider_names, "Select providers to sync:")
    report = SyncReport(providers_total=len(targets))

    for provider in targets:
        try:
            results: list[WriteResult] = []
            subset = Registry(servers=dict(registry.servers), extra=registry.extra)

            for server_name, record in registry.servers.items():
                if provider.get_server_config(server_name) is not None:
                    continue
                if not (
                    provider.supports_disabled_state()
                    or provider.is_server_enabled_in_meta(record)
                ):
                    logger.debug(f"{provider.name}: not installing disabled server '{server_name}'")
                    continue

                result = provider.install_server(server_name, strip_meta(record).spec)
                results.append(result)
                if result is WriteResult.REJECTED:
                    logger.warning(f"Install of '{server_name}' in {provider.name} rejected, skipping")
                    report.skipped.append(server_name)
                    del subset.servers[server_name]

            results.append(provider.sync_servers(subset))
            result = merge_results(results)
            report.add_result(provider.name, result)

            if result is WriteResult.APPLIED:
                logger.info(f"✓ Synced {provider.name}")
            elif result is WriteResult.NO_CHANGES:
                logger.info(f"{provider.name} already in sync")
            else:
                logger.warning(f"Some changes to {provider.name} were rejected")
        except Exception as e:
            logger.error(f"{provider.name}: {e}")
            report.add_error(provider.name, str(e))

    save_registry(config_path, registry)
    return report


def import_from_providers(
    providers: list[ProviderAdapter],
    config_path: Path,
    selector: Selector | None = None,
    provider_names: list[str] | None = None,
) -> SyncReport:
    """Pull servers and their enabled state from provider files into the unified config.

    ABOUTME: Creates the unified config if it doesn't exist yet
    ABOUTME: On a definition conflict the unified definition wins, with a warning

    Raises:
        UnifiedStoreError: If an existing unified config is corrupt or can't be saved
    """
    registry = load_registry(config_path) if config_path.exists() else Registry()
    targets = _select_providers(providers, selector, provider_names, "Select providers to import from:")
    report = SyncReport(providers_total=len(targets))

    for provider in targets:
        try:
            found = provider.list_servers()
        except Exception as e:
            logger.error(f"{provider.name}: {e}")
            report.add_error(provider.name, str(e))
            continue

        for server_name, server in found.items():
            record = registry.servers.get(server_name)
            if record is None:
                registry.servers[server_name] = ServerRecord(
                    name=server_name,
                    spec=server.spec,
                    meta=ServerMeta(enabled={provider.name: server.state}),
                )
                report.imported.append(server_name)
                logger.info(f"Imported '{server_name}' from {provider.name}")
                continue

            if record.spec != server.spec:
                logger.warning(
                    f"Server '{server_name}' in {provider.name} differs from the unified "
                    f"config, keeping the unified definition"
                )
            record.meta.enabled[provider.name] = server.state

        report.add_result(provider.name, WriteResult.NO_CHANGES)

    save_registry(config_path, registry)
    return report


def rename_server(
    old_name: str,
    new_name: str,
    providers: list[ProviderAdapter],
    config_path: Path,
    selector: Selector | None = None,
    provider_names: list[str] | None = None,
) -> SyncReport:
    """Rename a server in the unified config, then in every selected provider.

    ABOUTME: The record keeps its definition, extra fields and _meta
    ABOUTME: Each provider rename is a single write with diff, confirm and backup
    ABOUTME: A provider that declines keeps the old name until the next rename or sync

    Raises:
        UnifiedStoreError: If the unified config can't be loaded or saved
        ValueError: If old_name isn't in the unified config or new_name is empty
    """
    registry = load_registry(config_path)
    report = SyncReport()

    new_name = new_name.strip()
    if not new_name:
        raise ValueError("New server name cannot be empty")
    if old_name not in registry.servers:
        raise ValueError(f"Server '{old_name}' not found in unified config")
    if old_name == new_name:
        logger.warning("Old and new name are the same, nothing to rename")
        return report

    if new_name in registry.servers:
        logger.warning(f"Server '{new_name}' already exists in unified config")
        if not confirm(f"Replace existing server '{new_name}' with '{old_name}'?"):
            logger.info("Rename cancelled")
            return report

    registry.servers = {
        (new_name if name == old_name else name): (
            replace(record, name=new_name) if name == old_name else record
        )
        for name, record in registry.servers.items()
        if name != new_name
    }
    save_registry(config_path, registry)
    logger.info(f"✓ Renamed '{old_name}' to '{new_name}' in unified config")

    targets = _select_providers(providers, selector, provider_names, "Select providers to rename in:")
    report.providers_total = len(targets)

    for provider in targets:
        try:
            result = provider.rename_server(old_name, new_name)
        except Exception as e:
            logger.error(f"{provider.name}: {e}")
            report.add_error(provider.name, str(e))
            continue

        report.add_result(provider.name, result)
        if result is WriteResult.APPLIED:
            logger.info(f"✓ Renamed '{old_name}' to '{new_name}' in {provider.name}")
        elif result is WriteResult.REJECTED:
            logger.warning(f"{provider.name} still uses '{old_name}'")

    return report
