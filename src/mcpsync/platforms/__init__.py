# Provider adapter registry
from mcpsync.models import ProviderAdapter
from mcpsync.platforms.base import BaseProvider, PresenceOnlyProvider
from mcpsync.platforms.claude import ClaudeProvider
from mcpsync.platforms.codex import CodexProvider
from mcpsync.platforms.cursor import CursorProvider
from mcpsync.platforms.gemini import GeminiProvider

# Registry of all available provider adapters
ALL_PROVIDERS: list[type[BaseProvider]] = [
    ClaudeProvider,
    GeminiProvider,
    CodexProvider,
    CursorProvider,
]

__all__ = [
    "ProviderAdapter",
    "BaseProvider",
    "PresenceOnlyProvider",
    "ClaudeProvider",
    "GeminiProvider",
    "CodexProvider",
    "CursorProvider",
    "ALL_PROVIDERS",
    "get_all_providers",
    "resolve_providers",
]


def get_all_providers() -> list[ProviderAdapter]:
    """Instantiate and return all provider adapters.

    ABOUTME: Creates instances with default config paths
    """
    return [provider_cls() for provider_cls in ALL_PROVIDERS]


def resolve_providers(arg: str | None, providers: list[ProviderAdapter]) -> list[str] | None:
    """Turn a --provider value into provider names.

    ABOUTME: None or "all" means no filter (returns None)
    ABOUTME: Otherwise a comma-separated list of names

    Raises:
        ValueError: If a name doesn't match any provider
    """
    if arg is None or arg.strip().lower() == "all":
        return None

    known = [provider.name for provider in providers]
    names = [part.strip().lower() for part in arg.split(",") if part.strip()]
    unknown = [name for name in names if name not in known]
    if unknown:
        raise ValueError(
            f"Unknown provider(s): {', '.join(unknown)}. Available: {', '.join(known)}, all"
        )
    return names
