"""Tools infrastructure: registry, resolution, fetching and extraction.

- Tool records and name normalization (base.py)
- Immutable registry with built-in table and overrides (registry.py)
- Availability resolution against host and cache (resolver.py)
- HTTP transport (http.py), archive extraction (installer.py)
- Single-tool download into the cache (fetcher.py)
- Cache integrity manifests (manifest.py)
"""

from artipack.tools.base import CROSS_PLATFORM, SourceKind, ToolRecord, normalize_tool_name
from artipack.tools.fetcher import DownloadResult, DownloadStatus, Fetcher
from artipack.tools.http import HttpClient, HttpError, MockHttpClient, RealHttpClient
from artipack.tools.installer import Installer, InstallError, InstallResult
from artipack.tools.manifest import MANIFEST_NAME, ToolManifest, load_manifest
from artipack.tools.registry import BUILTIN_TOOLS, RegistryError, ToolRegistry
from artipack.tools.resolver import DependencyResolver, DependencyState, DependencyStatus

__all__ = [
    # Base types
    "CROSS_PLATFORM",
    "SourceKind",
    "ToolRecord",
    "normalize_tool_name",
    # Registry
    "BUILTIN_TOOLS",
    "RegistryError",
    "ToolRegistry",
    # Resolve
    "DependencyResolver",
    "DependencyState",
    "DependencyStatus",
    # HTTP
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    # Install
    "Installer",
    "InstallError",
    "InstallResult",
    # Fetch
    "DownloadResult",
    "DownloadStatus",
    "Fetcher",
    # Manifest
    "MANIFEST_NAME",
    "ToolManifest",
    "load_manifest",
]
