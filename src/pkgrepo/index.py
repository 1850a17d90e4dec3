# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Repository Index

Single responsibility: keep the namespace dictionary and the package
dictionary of the installed packages consistent.

- namespace dictionary: namespace URI -> set of package ids contributing a
  module under that namespace
- package dictionary: package id -> install directory name (the parsed
  descriptor is cached alongside)

Locking: every read and write of the two dictionaries happens under one
re-entrant lock, so register/unregister are atomic to readers. The index is
built by load() and afterwards only changed by register()/unregister().
"""

import logging
import shutil
import threading
from functools import cmp_to_key
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Set

from . import versions
from .descriptor import read_descriptor
from .errors import NotFoundError, RepositoryError
from .models import InstalledPackage, PackageDescriptor

logger = logging.getLogger(__name__)

# Prefixes of hidden working directories created by RepositoryManager
STAGING_PREFIX = ".staging-"
TRASH_PREFIX = ".trash-"


class RepositoryIndex:
    """In-memory index of the packages installed under a repository root"""

    def __init__(self, root: Path):
        """
        Initialize an empty index.

        Args:
            root: Repository root directory
        """
        self.root = Path(root)
        self._lock = threading.RLock()
        self._namespaces: Dict[str, Set[str]] = {}
        self._packages: Dict[str, InstalledPackage] = {}

    def load(self, root: Optional[Path] = None, purge: bool = False) -> int:
        """
        Rebuild both dictionaries by scanning the repository root.

        Every visible subdirectory holding a readable descriptor is registered;
        corrupt entries are skipped with a warning. Staging and trash
        directories are never registered.

        Args:
            root: Optional new repository root
            purge: Remove staging and trash directories left by an interrupted
                   process. Only safe while no install or delete is running.

        Returns:
            Number of registered packages
        """
        if root is not None:
            self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

        namespaces: Dict[str, Set[str]] = {}
        packages: Dict[str, InstalledPackage] = {}

        for entry in sorted(self.root.iterdir()):
            if not entry.is_dir():
                continue
            if purge and entry.name.startswith((STAGING_PREFIX, TRASH_PREFIX)):
                logger.warning(f"Removing leftover directory of an interrupted operation: {entry.name}")
                shutil.rmtree(entry, ignore_errors=True)
                continue
            if entry.name.startswith("."):
                continue

            try:
                descriptor = read_descriptor(entry)
            except RepositoryError as e:
                logger.warning(f"Skipping {entry.name}: {e}")
                continue

            if not descriptor.name or not descriptor.version:
                logger.warning(f"Skipping {entry.name}: descriptor has no name or version")
                continue
            if descriptor.id in packages:
                logger.warning(
                    f"Skipping {entry.name}: {descriptor.id} already provided by "
                    f"{packages[descriptor.id].directory}"
                )
                continue

            packages[descriptor.id] = InstalledPackage(
                id=descriptor.id,
                directory=entry.name,
                descriptor=descriptor
            )
            for namespace in descriptor.namespaces():
                namespaces.setdefault(namespace, set()).add(descriptor.id)

        with self._lock:
            self._namespaces = namespaces
            self._packages = packages

        logger.info(f"Loaded {len(packages)} packages from {self.root}")
        return len(packages)

    def lookup_packages(self, namespace: str) -> FrozenSet[str]:
        """Ids of packages contributing modules to a namespace (empty if unknown)"""
        with self._lock:
            return frozenset(self._namespaces.get(namespace, ()))

    def lookup_location(self, package_id: str) -> str:
        """
        Install directory name of a package.

        Raises:
            NotFoundError: If the package is not installed
        """
        return self.get_package(package_id).directory

    def get_package(self, package_id: str) -> InstalledPackage:
        with self._lock:
            try:
                return self._packages[package_id]
            except KeyError:
                raise NotFoundError(package_id)

    def packages_named(self, name: str) -> List[InstalledPackage]:
        """Installed versions of a package name, ordered by version"""
        with self._lock:
            found = [p for p in self._packages.values() if p.name == name]
        return sorted(found, key=cmp_to_key(lambda a, b: versions.compare_versions(a.version, b.version)))

    def installed_versions(self, name: str) -> List[str]:
        return [p.version for p in self.packages_named(name)]

    def packages_for(self, namespace: str) -> List[InstalledPackage]:
        """Snapshot of the packages contributing to a namespace, sorted by id"""
        with self._lock:
            ids = sorted(self._namespaces.get(namespace, ()))
            return [self._packages[package_id] for package_id in ids]

    def find_directory(self, directory: str) -> Optional[InstalledPackage]:
        with self._lock:
            for package in self._packages.values():
                if package.directory == directory:
                    return package
        return None

    def register(self, descriptor: PackageDescriptor, directory: str) -> InstalledPackage:
        """
        Add a package whose files are already committed to `directory`.

        Args:
            descriptor: Descriptor of the installed package
            directory: Install directory name under the repository root

        Returns:
            The new index entry
        """
        package = InstalledPackage(id=descriptor.id, directory=directory, descriptor=descriptor)
        with self._lock:
            self._packages[package.id] = package
            for namespace in descriptor.namespaces():
                self._namespaces.setdefault(namespace, set()).add(package.id)

        logger.debug(f"Registered {package.id} in {directory}")
        return package

    def unregister(self, package_id: str) -> InstalledPackage:
        """
        Remove a package from both dictionaries.

        Raises:
            NotFoundError: If the package is not installed
        """
        with self._lock:
            package = self.get_package(package_id)
            del self._packages[package_id]
            for namespace in list(self._namespaces):
                members = self._namespaces[namespace]
                members.discard(package_id)
                if not members:
                    del self._namespaces[namespace]

        logger.debug(f"Unregistered {package_id}")
        return package

    def dependents(self, package_id: str) -> Set[str]:
        """
        Ids of installed packages with a dependency resolved by this package.

        A dependency resolves to the package when it names the package and the
        package's version satisfies its constraint.
        """
        with self._lock:
            target = self.get_package(package_id)
            found = set()
            for other in self._packages.values():
                if other.id == package_id:
                    continue
                for dep in other.descriptor.dependencies:
                    if dep.package == target.name and versions.satisfies(dep.constraint, target.version):
                        found.add(other.id)
                        break
        return found

    def list_packages(self) -> List[InstalledPackage]:
        with self._lock:
            return sorted(self._packages.values(), key=lambda p: p.id)

    def package_dict(self) -> Dict[str, str]:
        """Copy of the package dictionary (id -> directory)"""
        with self._lock:
            return {package_id: p.directory for package_id, p in self._packages.items()}

    def namespace_dict(self) -> Dict[str, FrozenSet[str]]:
        """Copy of the namespace dictionary (namespace -> package ids)"""
        with self._lock:
            return {ns: frozenset(ids) for ns, ids in self._namespaces.items()}

    def __contains__(self, package_id: str) -> bool:
        with self._lock:
            return package_id in self._packages

    def __len__(self) -> int:
        with self._lock:
            return len(self._packages)
