# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Repository Manager

Single responsibility: install, delete and resolve packages.

Install: stage (extract outside the lock) -> validate -> rename into place ->
register. Any failure discards the staged files and leaves the index as it
was. Delete: resolve -> dependents check -> rename away -> unregister ->
remove the renamed directory outside the lock.

Staging and trash directories are hidden siblings of the installed packages
(same filesystem, so os.replace is atomic); from_config() purges any left
behind by an interrupted process before the manager starts serving.
"""

import logging
import os
import shutil
import threading
import uuid
from pathlib import Path, PurePosixPath
from typing import FrozenSet, List, Optional, Union

from . import archive, signing
from .config import RepositoryConfig
from .descriptor import (
    MODULE_SUFFIXES,
    module_namespace,
    read_descriptor,
    sanitize,
    uri_to_path,
)
from .errors import (
    AmbiguousPackageError,
    DependencyConflictError,
    IOFailureError,
    MalformedDescriptorError,
    NotFoundError,
    RepositoryError,
    SourceNotFoundError,
    ValidationError,
)
from .index import STAGING_PREFIX, TRASH_PREFIX, RepositoryIndex
from .logging import configure_logging, operation_logger
from .models import (
    Component,
    ComponentType,
    InstalledPackage,
    PackageDescriptor,
    ResolvedModule,
    TransactionOperation,
    TransactionStatus,
)
from .transactions import TransactionLogger
from .validator import PackageValidator

logger = logging.getLogger(__name__)

# Fallback content directory when <abbrev>/ does not exist
CONTENT_DIR = "content"

# Version and spec given to descriptors synthesized for single-file modules
URN_VERSION = "0"
URN_SPEC = "1.0"


class RepositoryManager:
    """Public entry point for package installation and removal"""

    def __init__(
        self,
        index: RepositoryIndex,
        config: Optional[RepositoryConfig] = None,
        transaction_logger: Optional[TransactionLogger] = None
    ):
        """
        Initialize repository manager.

        Args:
            index: Loaded repository index
            config: Repository configuration (defaults if omitted)
            transaction_logger: Optional transaction log
        """
        self.index = index
        self.config = config or RepositoryConfig(repo_path=str(index.root))
        self.transaction_logger = transaction_logger
        self.validator = PackageValidator(
            index,
            processor_name=self.config.processor_name,
            processor_version=self.config.processor_version
        )
        # Serializes validate-then-commit and check-then-remove
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: RepositoryConfig) -> "RepositoryManager":
        """Configure logging, load the index and open the transaction log"""
        configure_logging(config.log_level, config.log_format, config.log_file)

        index = RepositoryIndex(config.root)
        index.load(purge=True)

        transaction_logger = None
        if config.transaction_log_path is not None:
            transaction_logger = TransactionLogger(config.transaction_log_path)

        return cls(index, config=config, transaction_logger=transaction_logger)

    def reload(self) -> int:
        """Rebuild the index from disk; waits for a running commit or removal"""
        with self._lock:
            return self.index.load()

    def import_key(self, key_data: str) -> str:
        """
        Import a publisher key into the keyring used for signature checks.

        Returns:
            Fingerprint of the imported key
        """
        fingerprint = signing.import_public_key(key_data, self.config.keyring_dir)
        logger.info(f"Imported signing key {fingerprint}")
        return fingerprint

    @property
    def root(self) -> Path:
        return self.index.root

    # ------------------------------------------------------------------
    # install
    # ------------------------------------------------------------------

    def install(self, source: Union[str, Path]) -> str:
        """
        Install a package archive or a single module file.

        Args:
            source: Path to a .xar/.zip archive or a module file

        Returns:
            Package id for archives; relative path of the module for
            single-file installs

        Raises:
            SourceNotFoundError: If the source does not exist
            ValidationError: If the package is rejected (index unchanged)
            IOFailureError: If extraction or commit fails (index unchanged)
        """
        source = Path(source)
        transaction = self._begin(TransactionOperation.INSTALL, str(source))
        log = operation_logger(
            logger, TransactionOperation.INSTALL, str(source),
            transaction.id if transaction else None
        )

        try:
            if not source.is_file():
                raise SourceNotFoundError(str(source))

            if self.config.gpgcheck:
                signing.require_valid_signature(source, self.config.keyring_dir)

            if archive.is_archive(source):
                result = self._install_archive(source)
            else:
                result = self._install_module(source)
        except RepositoryError as e:
            log.error(f"Installation failed: {e}")
            self._fail(transaction, e, rolled_back=isinstance(e, (ValidationError, IOFailureError)))
            raise

        self._complete(transaction, result)
        log.info("package_installed", extra={"package_id": result})
        return result

    def _install_archive(self, source: Path) -> str:
        staging = self.root / f"{STAGING_PREFIX}{uuid.uuid4().hex}"
        try:
            archive.extract(source, staging)
            descriptor = read_descriptor(staging)
            self._check_contents(staging, descriptor)

            with self._lock:
                self.validator.check(descriptor)
                directory = sanitize(descriptor.id)
                target = self.root / directory
                if target.exists():
                    raise IOFailureError(
                        f"Install directory already exists: {directory}",
                        path=str(target)
                    )
                try:
                    os.replace(staging, target)
                except OSError as e:
                    raise IOFailureError(f"Failed to commit {descriptor.id}: {e}", path=str(target))
                self.index.register(descriptor, directory)
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)

        logger.info(f"Package {descriptor.id} installed in {directory}")
        return descriptor.id

    def _check_contents(self, staging: Path, descriptor: PackageDescriptor) -> None:
        content = self._content_dir(staging, descriptor)
        root = content.resolve()
        for component in descriptor.components:
            path = (content / component.file).resolve()
            if root not in path.parents:
                raise MalformedDescriptorError(
                    f"Declared component lies outside the package content: {component.file}",
                    field="file"
                )
            if not path.is_file():
                raise MalformedDescriptorError(
                    f"Declared component not found in package: {component.file}",
                    field="file"
                )

    def _install_module(self, source: Path) -> str:
        try:
            text = source.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise IOFailureError(f"Cannot read module {source}: {e}", path=str(source))

        namespace = module_namespace(text)
        if not namespace:
            raise MalformedDescriptorError(
                f"{source.name} is neither a package archive nor a library module",
                field="namespace"
            )

        suffix = source.suffix if source.suffix in MODULE_SUFFIXES else MODULE_SUFFIXES[0]
        relative = self._urn_relative(namespace, suffix)
        descriptor = PackageDescriptor(
            name=namespace,
            abbrev=relative.stem,
            version=URN_VERSION,
            spec=URN_SPEC,
            components=(Component(type=ComponentType.MODULE, namespace=namespace, file=str(relative)),)
        )

        target = self.root / relative
        staged = target.with_name(f"{STAGING_PREFIX}{uuid.uuid4().hex}")
        with self._lock:
            self.validator.check(descriptor)
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(source, staged)
                os.replace(staged, target)
                # one file per namespace: drop copies stored under another suffix
                for other in MODULE_SUFFIXES:
                    stale = self.root / self._urn_relative(namespace, other)
                    if other != suffix and stale.is_file():
                        stale.unlink()
            except OSError as e:
                raise IOFailureError(f"Failed to install module {namespace}: {e}", path=str(target))
            finally:
                if staged.exists():
                    staged.unlink()

        logger.info(f"Module {namespace} installed as {relative}")
        return str(relative)

    # ------------------------------------------------------------------
    # delete
    # ------------------------------------------------------------------

    def delete(self, name_or_id: str) -> str:
        """
        Delete an installed package, or a single-file module by namespace.

        Args:
            name_or_id: Package id, install directory, bare package name or
                        module namespace

        Returns:
            Deleted package id (or module path)

        Raises:
            NotFoundError: If nothing matches
            AmbiguousPackageError: If a bare name matches several versions
            DependencyConflictError: If other packages depend on the package
            IOFailureError: If the directory cannot be moved away
        """
        transaction = self._begin(TransactionOperation.DELETE, name_or_id)
        log = operation_logger(
            logger, TransactionOperation.DELETE, name_or_id,
            transaction.id if transaction else None
        )
        try:
            with self._lock:
                package = self._resolve_package(name_or_id)
                if package is None:
                    result = self._delete_module(name_or_id)
                    trash = None
                else:
                    trash = self._detach(package)
                    result = package.id
        except RepositoryError as e:
            log.error(f"Deletion failed: {e}")
            self._fail(transaction, e)
            raise

        if trash is not None:
            try:
                shutil.rmtree(trash)
            except OSError as e:
                log.warning(f"Could not remove {trash.name}: {e}", extra={"package_id": result})

        self._complete(transaction, result)
        log.info("package_deleted", extra={"package_id": result})
        return result

    def _resolve_package(self, name_or_id: str) -> Optional[InstalledPackage]:
        if name_or_id in self.index:
            return self.index.get_package(name_or_id)

        by_directory = self.index.find_directory(name_or_id)
        if by_directory is not None:
            return by_directory

        candidates = self.index.packages_named(name_or_id)
        if len(candidates) > 1:
            raise AmbiguousPackageError(name_or_id, [p.id for p in candidates])
        return candidates[0] if candidates else None

    def _detach(self, package: InstalledPackage) -> Optional[Path]:
        dependents = self.index.dependents(package.id)
        if dependents:
            raise DependencyConflictError(package.id, dependents)

        directory = self.root / package.directory
        trash = self.root / f"{TRASH_PREFIX}{uuid.uuid4().hex}"
        if directory.exists():
            try:
                os.replace(directory, trash)
            except OSError as e:
                raise IOFailureError(f"Failed to remove {package.id}: {e}", path=str(directory))
        else:
            logger.warning(f"Directory of {package.id} is missing: {package.directory}")
            trash = None

        self.index.unregister(package.id)
        logger.info(f"Package {package.id} deleted")
        return trash

    def _delete_module(self, namespace: str) -> str:
        path = self._urn_module(namespace)
        if path is None:
            raise NotFoundError(namespace)
        try:
            path.unlink()
        except OSError as e:
            raise IOFailureError(f"Failed to remove module {namespace}: {e}", path=str(path))

        relative = path.relative_to(self.root)
        logger.info(f"Module {namespace} deleted from {relative}")
        return relative.as_posix()

    # ------------------------------------------------------------------
    # lookup
    # ------------------------------------------------------------------

    def resolve_modules(self, namespace: str) -> List[ResolvedModule]:
        """
        Module files for a namespace, from every contributing package.

        Package modules come first (sorted by package id, then declaration
        order), followed by a single-file module installed for the namespace.
        """
        resolved = []
        for package in self.index.packages_for(namespace):
            content = self._content_dir(self.root / package.directory, package.descriptor)
            for component in package.descriptor.modules(namespace):
                resolved.append(ResolvedModule(
                    package_id=package.id,
                    namespace=namespace,
                    path=content / component.file
                ))

        urn = self._urn_module(namespace)
        if urn is not None:
            resolved.append(ResolvedModule(package_id=None, namespace=namespace, path=urn))
        return resolved

    def lookup_packages(self, namespace: str) -> FrozenSet[str]:
        return self.index.lookup_packages(namespace)

    def list_packages(self) -> List[InstalledPackage]:
        return self.index.list_packages()

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _content_dir(directory: Path, descriptor: PackageDescriptor) -> Path:
        content = directory / descriptor.abbrev
        if not content.is_dir() and (directory / CONTENT_DIR).is_dir():
            return directory / CONTENT_DIR
        return content

    @staticmethod
    def _urn_relative(namespace: str, suffix: str) -> PurePosixPath:
        relative = uri_to_path(namespace)
        return relative.with_name(relative.name + suffix)

    def _urn_module(self, namespace: str) -> Optional[Path]:
        for suffix in MODULE_SUFFIXES:
            path = self.root / self._urn_relative(namespace, suffix)
            if path.is_file():
                return path
        return None

    def _begin(self, operation: TransactionOperation, target: str):
        if self.transaction_logger is None:
            return None
        transaction = self.transaction_logger.create_transaction(operation, target)
        transaction.status = TransactionStatus.IN_PROGRESS
        self.transaction_logger.log(transaction)
        return transaction

    def _complete(self, transaction, package_id: str) -> None:
        if transaction is not None:
            self.transaction_logger.complete(transaction, package_id)

    def _fail(self, transaction, error: Exception, rolled_back: bool = False) -> None:
        if transaction is not None:
            self.transaction_logger.fail(transaction, error, rolled_back=rolled_back)
