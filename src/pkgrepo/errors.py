# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Custom exceptions for the package repository.

All exceptions inherit from RepositoryError so front ends can catch one type
and render `to_dict()` for the user.
"""

from typing import Iterable, Optional


class RepositoryError(Exception):
    """Base exception for all repository errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize repository error.

        Args:
            message: Human-readable error message
            details: Additional error details
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for display."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ValidationError(RepositoryError):
    """Package descriptor was rejected before installation."""


class MalformedDescriptorError(ValidationError):
    """Descriptor is missing a mandatory field or cannot be read."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.field = field


class UnsatisfiedDependencyError(ValidationError):
    """No installed version satisfies a declared package dependency."""

    def __init__(self, package: str, details: Optional[dict] = None):
        super().__init__(f"Required package is not installed: {package}", details=details)
        self.package = package


class UnsupportedHostVersionError(ValidationError):
    """Host processor version does not satisfy a processor dependency."""

    def __init__(self, processor: str, version: str, details: Optional[dict] = None):
        super().__init__(
            f"Package does not support {processor} version {version}",
            details=details
        )
        self.processor = processor
        self.version = version


class AlreadyInstalledError(ValidationError):
    """Package or one of its module components is already installed."""

    def __init__(
        self,
        message: str,
        package_id: Optional[str] = None,
        namespace: Optional[str] = None,
        file: Optional[str] = None,
        details: Optional[dict] = None
    ):
        super().__init__(message, details=details)
        self.package_id = package_id
        self.namespace = namespace
        self.file = file

    @classmethod
    def package(cls, package_id: str) -> "AlreadyInstalledError":
        return cls(f"Package is already installed: {package_id}", package_id=package_id)

    @classmethod
    def component(cls, namespace: str, file: str, owner: str) -> "AlreadyInstalledError":
        return cls(
            f"Module {file} ({namespace}) is already installed by {owner}",
            package_id=owner,
            namespace=namespace,
            file=file
        )


class InvalidSignatureError(ValidationError):
    """Install source failed detached signature verification."""


class SourceNotFoundError(RepositoryError):
    """Install source does not exist."""

    def __init__(self, source: str, details: Optional[dict] = None):
        super().__init__(f"Package source not found: {source}", details=details)
        self.source = source


class NotFoundError(RepositoryError):
    """Installed package not found."""

    def __init__(self, identifier: str, details: Optional[dict] = None):
        super().__init__(f"Package not found: {identifier}", details=details)
        self.identifier = identifier


class AmbiguousPackageError(RepositoryError):
    """A bare package name matches more than one installed version."""

    def __init__(self, name: str, candidates: Iterable[str], details: Optional[dict] = None):
        self.name = name
        self.candidates = sorted(candidates)
        super().__init__(
            f"Package name {name} matches several installed versions: {', '.join(self.candidates)}",
            details=details
        )


class DependencyConflictError(RepositoryError):
    """Package cannot be deleted because other packages depend on it."""

    def __init__(self, package_id: str, dependents: Iterable[str], details: Optional[dict] = None):
        self.package_id = package_id
        self.dependents = sorted(dependents)
        super().__init__(
            f"Cannot delete {package_id}: required by {', '.join(self.dependents)}",
            details=details
        )


class IOFailureError(RepositoryError):
    """Extraction, rename, copy or removal failed on disk."""

    def __init__(self, message: str, path: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.path = path


class GPGNotFoundError(RepositoryError):
    """Raised when GPG executable is not found on the system"""
