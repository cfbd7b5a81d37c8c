# mcpsync - MCP server configuration sync across AI coding assistants
# ABOUTME: Version information
__version__ = "0.1.0"

# ABOUTME: Export core data models
# ABOUTME: Export unified config loading functions
from mcpsync.config import UnifiedStoreError, get_config_path, load_registry, save_registry, strip_meta
from mcpsync.models import (
    ConnectionSpec,
    EnabledState,
    Global,
    HttpSpec,
    PerProject,
    ProviderAdapter,
    Registry,
    ServerMeta,
    ServerRecord,
    StdioSpec,
    WriteResult,
)

__all__ = [
    "__version__",
    "ConnectionSpec",
    "EnabledState",
    "Global",
    "HttpSpec",
    "PerProject",
    "ProviderAdapter",
    "Registry",
    "ServerMeta",
    "ServerRecord",
    "StdioSpec",
    "WriteResult",
    "UnifiedStoreError",
    "get_config_path",
    "load_registry",
    "save_registry",
    "strip_meta",
]
