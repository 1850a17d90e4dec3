# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
pkgrepo - Package Repository Manager

Installs, validates, removes and resolves extension packages of a
module-importing host:
- versions: version comparison and dependency constraints
- index: namespace and package dictionaries of installed packages
- validator: pre-install checks against the index
- manager: install / delete / resolve_modules entry point
"""

__version__ = "1.0.0"

from .config import RepositoryConfig, load_config, get_config
from .errors import (
    RepositoryError,
    ValidationError,
    MalformedDescriptorError,
    UnsatisfiedDependencyError,
    UnsupportedHostVersionError,
    AlreadyInstalledError,
    InvalidSignatureError,
    SourceNotFoundError,
    NotFoundError,
    AmbiguousPackageError,
    DependencyConflictError,
    IOFailureError,
)
from .index import RepositoryIndex
from .manager import RepositoryManager
from .models import PackageDescriptor, Dependency, Component, InstalledPackage, ResolvedModule
from .validator import PackageValidator

__all__ = [
    "__version__",
    "RepositoryConfig",
    "load_config",
    "get_config",
    "RepositoryError",
    "ValidationError",
    "MalformedDescriptorError",
    "UnsatisfiedDependencyError",
    "UnsupportedHostVersionError",
    "AlreadyInstalledError",
    "InvalidSignatureError",
    "SourceNotFoundError",
    "NotFoundError",
    "AmbiguousPackageError",
    "DependencyConflictError",
    "IOFailureError",
    "RepositoryIndex",
    "RepositoryManager",
    "PackageDescriptor",
    "Dependency",
    "Component",
    "InstalledPackage",
    "ResolvedModule",
    "PackageValidator",
]
