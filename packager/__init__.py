"""Application packaging pipeline."""

from .app_info import AppInfo
from .configuration import Configuration, Directories
from .errors import ConfigurationError, PackagerError, SanityCheckError, TaskBatchError
from .file_matcher import FileMatcher, get_file_matchers, get_main_file_matchers, get_node_module_file_matcher
from .file_sets import DestinationOverride, FileSet, compute_file_sets, copy_files, create_transformer
from .framework import ArtifactCreated, BuildInfo, Framework, PackContext, Platform, Target
from .hooks import ExternalReference, InlineCallable, invoke_hook, resolve_hook
from .macros import Arch, MacroExpander, expand_macro
from .metadata import check_metadata, read_package_json
from .platform_packager import PackagingMode, PlatformPackager
from .stage import StageDir, create_stage_dir
from .vm import MonoVmManager, VmManager

__all__ = [
    "AppInfo",
    "Configuration",
    "Directories",
    "ConfigurationError",
    "PackagerError",
    "SanityCheckError",
    "TaskBatchError",
    "FileMatcher",
    "get_file_matchers",
    "get_main_file_matchers",
    "get_node_module_file_matcher",
    "DestinationOverride",
    "FileSet",
    "compute_file_sets",
    "copy_files",
    "create_transformer",
    "ArtifactCreated",
    "BuildInfo",
    "Framework",
    "PackContext",
    "Platform",
    "Target",
    "ExternalReference",
    "InlineCallable",
    "invoke_hook",
    "resolve_hook",
    "Arch",
    "MacroExpander",
    "expand_macro",
    "check_metadata",
    "read_package_json",
    "PackagingMode",
    "PlatformPackager",
    "StageDir",
    "create_stage_dir",
    "MonoVmManager",
    "VmManager",
]
