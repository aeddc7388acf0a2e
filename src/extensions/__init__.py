"""
Startup extensions applied in a fixed order before the service accepts calls.
"""

from extensions.bootstrap import (
    BootstrapResult,
    Extension,
    ExtensionConfig,
    ExtensionInitError,
    InitErrorKind,
    bootstrap_extensions,
)
from extensions.posix_shim import (
    PosixShim,
    PosixShimConfig,
    PosixShimExtension,
    extension_configs_from_settings,
)

__all__ = [
    "BootstrapResult",
    "Extension",
    "ExtensionConfig",
    "ExtensionInitError",
    "InitErrorKind",
    "bootstrap_extensions",
    "PosixShim",
    "PosixShimConfig",
    "PosixShimExtension",
    "extension_configs_from_settings",
]
