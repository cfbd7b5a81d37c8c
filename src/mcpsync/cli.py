# CLI interface for mcpsync
import argparse
import json
import logging
import sys
from pathlib import Path

from mcpsync import __version__
from mcpsync.config import (
    UnifiedStoreError,
    add_server_to_config,
    get_config_path,
    load_registry,
    record_to_data,
    remove_server_from_config,
)
from mcpsync.models import (
    ConnectionSpec,
    EnabledState,
    Global,
    HttpSpec,
    ProviderAdapter,
    ServerRecord,
    StdioSpec,
    WriteResult,
)
from mcpsync.platforms import get_all_providers, resolve_providers
from mcpsync.prompts import InteractiveSelector, set_assume_yes
from mcpsync.sync import (
    SyncReport,
    import_from_providers,
    rename_server,
    sync_servers,
    toggle_servers,
)
from mcpsync.utils.backup import backup_files, get_backup_dir

logger = logging.getLogger(__name__)

# ABOUTME: Exit codes
# 0 = success, 1 = every provider failed, 2 = config or argument error, 3 = fatal
EXIT_SUCCESS = 0
EXIT_PARTIAL = 1
EXIT_CONFIG_ERROR = 2
EXIT_FATAL = 3

RESULT_LABELS = {
    WriteResult.APPLIED: "updated",
    WriteResult.NO_CHANGES: "no changes",
    WriteResult.REJECTED: "skipped (rejected)",
}


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )


def parse_pairs(value: str | None) -> dict[str, str]:
    """Parse comma-separated KEY=VALUE pairs, ignoring malformed ones."""
    pairs: dict[str, str] = {}
    if not value:
        return pairs
    for pair in value.split(","):
        if "=" in pair:
            key, val = pair.split("=", 1)
            pairs[key.strip()] = val.strip()
    return pairs


def _config_path(args: argparse.Namespace) -> Path:
    return Path(args.config).expanduser() if args.config else get_config_path()


def _selector(args: argparse.Namespace) -> InteractiveSelector | None:
    """Interactive selection only when attached to a terminal and not auto-confirming."""
    if args.yes or not sys.stdin.isatty():
        return None
    return InteractiveSelector()


def print_report(report: SyncReport) -> int:
    """Print per-provider results and turn the report into an exit code."""
    print()
    for provider_name, result in report.results.items():
        print(f"  {provider_name} - {RESULT_LABELS[result]}")

    if report.imported:
        print()
        print(f"Imported into unified config: {', '.join(report.imported)}")

    if report.skipped:
        print()
        print(f"Skipped: {', '.join(report.skipped)}")

    if report.errors:
        print()
        for error_msg in report.errors:
            print(f"  Error: {error_msg}")

    print()
    succeeded = report.providers_total - len(report.failed)
    print(f"Done: {succeeded}/{report.providers_total} provider(s) processed")

    return EXIT_PARTIAL if report.all_failed else EXIT_SUCCESS


def cmd_toggle(args: argparse.Namespace, enabled: bool) -> int:
    """Execute enable/disable command.

    ABOUTME: Non-interactive when -p is given, or without a terminal
    """
    action = "enable" if enabled else "disable"
    print(f"mcpsync {action} v{__version__}")

    providers = get_all_providers()
    provider_names = resolve_providers(args.provider, providers)
    report = toggle_servers(
        enabled,
        list(args.servers),
        providers,
        _config_path(args),
        selector=_selector(args),
        provider_names=provider_names,
        projects=args.project,
    )
    return print_report(report)


def cmd_sync(args: argparse.Namespace) -> int:
    """Execute sync command.

    ABOUTME: Pushes the unified config to every selected provider
    """
    print(f"mcpsync sync v{__version__}")

    providers = get_all_providers()
    provider_names = resolve_providers(args.provider, providers)
    report = sync_servers(
        providers, _config_path(args), selector=_selector(args), provider_names=provider_names
    )
    return print_report(report)


def cmd_import(args: argparse.Namespace) -> int:
    """Execute import command.

    ABOUTME: Creates the unified config from provider files if it doesn't exist
    """
    print(f"mcpsync import v{__version__}")

    providers = get_all_providers()
    provider_names = resolve_providers(args.provider, providers)
    report = import_from_providers(
        providers, _config_path(args), selector=_selector(args), provider_names=provider_names
    )
    return print_report(report)


def _describe_state(state: EnabledState) -> str:
    if isinstance(state, Global):
        return "enabled" if state.enabled else "disabled"
    flags = [f"{path}: {'on' if flag else 'off'}" for path, flag in state.projects.items()]
    return ", ".join(flags) or "-"


def cmd_list(args: argparse.Namespace) -> int:
    """Execute list command.

    ABOUTME: Displays every server and its enabled state per provider
    """
    print(f"mcpsync list v{__version__}")
    print()

    config_path = _config_path(args)
    registry = load_registry(config_path)

    print(f"MCP Servers in {config_path}:")
    print()

    for server_name, record in registry.servers.items():
        spec = record.spec
        print(f"  {server_name}")
        print(f"    type: {spec.transport}")

        if isinstance(spec, StdioSpec):
            print(f"    command: {spec.command}")
            if spec.args:
                print(f"    args: {' '.join(spec.args)}")
            if spec.env:
                print(f"    env: {', '.join(f'{k}={v}' for k, v in spec.env.items())}")
        else:
            print(f"    url: {spec.url}")
            if spec.headers:
                print(f"    headers: {', '.join(f'{k}={v}' for k, v in spec.headers.items())}")

        for provider_name, state in record.meta.enabled.items():
            print(f"    {provider_name}: {_describe_state(state)}")
        print()

    print(f"Total: {len(registry.servers)} server(s)")
    return EXIT_SUCCESS


def cmd_add(args: argparse.Namespace) -> int:
    """Execute add command.

    ABOUTME: Adds or replaces a server definition in the unified config only
    ABOUTME: Run 'mcpsync enable' or 'mcpsync sync' to push it to providers
    """
    print(f"mcpsync add v{__version__}")
    print()

    if args.url and args.command:
        print("Error: Use either --command or --url, not both.")
        return EXIT_CONFIG_ERROR
    if args.url and args.type == "stdio":
        print("Error: --type stdio needs --command, not --url.")
        return EXIT_CONFIG_ERROR
    if args.command and args.type in ("http", "sse"):
        print(f"Error: --type {args.type} needs --url, not --command.")
        return EXIT_CONFIG_ERROR

    spec: ConnectionSpec
    if args.url:
        spec = HttpSpec(url=args.url, headers=parse_pairs(args.headers), transport=args.type or "http")
    elif args.command:
        spec = StdioSpec(
            command=args.command,
            args=[arg.strip() for arg in args.args.split(",")] if args.args else [],
            env=parse_pairs(args.env),
        )
    else:
        print("Error: Either --command or --url is required.")
        return EXIT_CONFIG_ERROR

    config_path = _config_path(args)
    replaced = add_server_to_config(config_path, ServerRecord(name=args.name, spec=spec))

    verb = "Replaced" if replaced else "Added"
    print(f"{verb} server '{args.name}' in {config_path}")
    return EXIT_SUCCESS


def cmd_remove(args: argparse.Namespace) -> int:
    """Execute remove command.

    ABOUTME: Removes a server from the unified config, provider files are untouched
    """
    print(f"mcpsync remove v{__version__}")
    print()

    config_path = _config_path(args)
    if not remove_server_from_config(config_path, args.name):
        print(f"  Server '{args.name}' not found in config.")
        return EXIT_CONFIG_ERROR

    print(f"Removed server '{args.name}' from {config_path}")
    return EXIT_SUCCESS


def cmd_rename(args: argparse.Namespace) -> int:
    """Execute rename command.

    ABOUTME: Renames in the unified config first, then in each provider
    """
    print(f"mcpsync rename v{__version__}")

    providers = get_all_providers()
    provider_names = resolve_providers(args.provider, providers)
    report = rename_server(
        args.old_name,
        args.new_name,
        providers,
        _config_path(args),
        selector=_selector(args),
        provider_names=provider_names,
    )
    return print_report(report)


def _provider_status(provider: ProviderAdapter, record: ServerRecord) -> str:
    if not provider.config_exists():
        return "no config file"
    try:
        server = provider.list_servers().get(record.name)
    except (ValueError, OSError) as e:
        return f"unreadable ({e})"
    if server is None:
        return "not installed"

    status = _describe_state(server.state)
    if server.spec != record.spec:
        status += " (differs from unified config)"
    return status


def cmd_show(args: argparse.Namespace) -> int:
    """Execute show command.

    ABOUTME: Prints one server's full unified entry and its state in each provider
    """
    print(f"mcpsync show v{__version__}")
    print()

    providers = get_all_providers()
    provider_names = resolve_providers(args.provider, providers)
    registry = load_registry(_config_path(args))

    record = registry.servers.get(args.name)
    if record is None:
        print(f"  Server '{args.name}' not found in config.")
        return EXIT_CONFIG_ERROR

    print(json.dumps({args.name: record_to_data(record)}, indent=2))
    print()
    print("Providers:")
    for provider in providers:
        if provider_names is None or provider.name in provider_names:
            print(f"  {provider.name}: {_provider_status(provider, record)}")
    return EXIT_SUCCESS


def cmd_backup_all(args: argparse.Namespace) -> int:
    """Execute backup-all command.

    ABOUTME: Backs up the unified config and every provider config that exists
    """
    print(f"mcpsync backup-all v{__version__}")
    print()

    providers = get_all_providers()
    provider_names = resolve_providers(args.provider, providers)

    files: dict[str, Path | None] = {"unified": _config_path(args)}
    for provider in providers:
        if provider_names is None or provider.name in provider_names:
            files[provider.name] = provider.config_path

    backup_dir = get_backup_dir()
    created = backup_files(files, backup_dir)
    if not created:
        print("No config files found to back up.")
        return EXIT_SUCCESS

    for label, backup_path in created.items():
        print(f"  {label} -> {backup_path.name}")
    print()
    print(f"Backed up {len(created)} file(s) to {backup_dir}")
    return EXIT_SUCCESS


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug output"
    )
    common.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Apply changes without asking for confirmation"
    )
    common.add_argument(
        "-p", "--provider",
        help="Comma-separated provider names, or 'all'"
    )
    common.add_argument(
        "--project",
        action="append",
        metavar="PATH",
        help="Project path to target (repeatable)"
    )
    common.add_argument(
        "--config",
        metavar="PATH",
        help="Unified config file (default: ~/.mcpsync/mcp.json)"
    )

    parser = argparse.ArgumentParser(
        prog="mcpsync",
        description="Keep MCP server configs in sync across AI coding assistants"
    )
    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"mcpsync v{__version__}"
    )

    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    enable_parser = subparsers.add_parser(
        "enable", parents=[common], help="Enable servers in providers"
    )
    enable_parser.add_argument("servers", nargs="*", help="Server names")

    disable_parser = subparsers.add_parser(
        "disable", parents=[common], help="Disable servers in providers"
    )
    disable_parser.add_argument("servers", nargs="*", help="Server names")

    subparsers.add_parser(
        "sync", parents=[common], help="Push the unified config to providers"
    )
    subparsers.add_parser(
        "import", parents=[common], help="Import servers from provider configs"
    )
    subparsers.add_parser(
        "list", parents=[common], help="List servers in the unified config"
    )

    add_parser = subparsers.add_parser(
        "add", parents=[common], help="Add a server to the unified config"
    )
    add_parser.add_argument("name", help="Name of the MCP server to add")
    add_parser.add_argument(
        "--type",
        choices=["stdio", "http", "sse"],
        help="Transport (inferred from --command/--url when omitted)"
    )
    add_parser.add_argument("--command", help="Command to run (for stdio type)")
    add_parser.add_argument("--url", help="URL endpoint (for http/sse type)")
    add_parser.add_argument("--args", help="Comma-separated arguments (for stdio type)")
    add_parser.add_argument("--env", help="Comma-separated KEY=VALUE environment variables")
    add_parser.add_argument("--headers", help="Comma-separated KEY=VALUE headers (for http/sse type)")

    remove_parser = subparsers.add_parser(
        "remove", parents=[common], help="Remove a server from the unified config"
    )
    remove_parser.add_argument("name", help="Name of the MCP server to remove")

    rename_parser = subparsers.add_parser(
        "rename", parents=[common], help="Rename a server in the unified config and providers"
    )
    rename_parser.add_argument("old_name", help="Current server name")
    rename_parser.add_argument("new_name", help="New server name")

    show_parser = subparsers.add_parser(
        "show", parents=[common], help="Show a server's full configuration"
    )
    show_parser.add_argument("name", help="Name of the MCP server to show")

    subparsers.add_parser(
        "backup-all", parents=[common], help="Back up the unified and provider configs"
    )

    return parser


COMMANDS = {
    "enable": lambda args: cmd_toggle(args, enabled=True),
    "disable": lambda args: cmd_toggle(args, enabled=False),
    "sync": cmd_sync,
    "import": cmd_import,
    "list": cmd_list,
    "add": cmd_add,
    "remove": cmd_remove,
    "rename": cmd_rename,
    "show": cmd_show,
    "backup-all": cmd_backup_all,
}


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    ABOUTME: Parses args and dispatches to appropriate command
    ABOUTME: Returns exit code for sys.exit()
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.subcommand is None:
        parser.print_help()
        return EXIT_SUCCESS

    setup_logging(args.verbose)
    set_assume_yes(args.yes)

    try:
        return COMMANDS[args.subcommand](args)
    except UnifiedStoreError as e:
        print(f"Error: {e}")
        return EXIT_CONFIG_ERROR
    except ValueError as e:
        print(f"Error: {e}")
        return EXIT_CONFIG_ERROR
    except KeyboardInterrupt:
        print("\nOperation cancelled.")
        return EXIT_SUCCESS
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        print(f"Fatal error: {e}")
        return EXIT_FATAL
    finally:
        set_assume_yes(False)


if __name__ == "__main__":
    sys.exit(main())
