"""Module loading: config synthesis, files overlay, remote fetch and loader runtime."""

from .config import SystemConfig, build_meta_rules, synthesize_system_config
from .files import DictFilesHost, DirectoryFilesHost, FilesHost, as_files_host
from .models import FetchResult, LoadedModule, ModuleRequest
from .overlay import VirtualFileOverlay, extension_variants
from .remote import RemoteFetcher, RemoteLoaderPlugin
from .system import SystemLoader, default_evaluator

__all__ = [
    "SystemConfig",
    "build_meta_rules",
    "synthesize_system_config",
    "DictFilesHost",
    "DirectoryFilesHost",
    "FilesHost",
    "as_files_host",
    "FetchResult",
    "LoadedModule",
    "ModuleRequest",
    "VirtualFileOverlay",
    "extension_variants",
    "RemoteFetcher",
    "RemoteLoaderPlugin",
    "SystemLoader",
    "default_evaluator",
]
