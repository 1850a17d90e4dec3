# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Package Validator

Single responsibility: decide whether a descriptor may be installed against
the current index. Reads the index only; never mutates it.
"""

import logging

from . import versions
from .errors import (
    AlreadyInstalledError,
    MalformedDescriptorError,
    UnsatisfiedDependencyError,
    UnsupportedHostVersionError,
)
from .index import RepositoryIndex
from .models import Dependency, PackageDescriptor

logger = logging.getLogger(__name__)

MANDATORY_FIELDS = ("name", "abbrev", "version", "spec")


class PackageValidator:
    """Checks descriptors before installation"""

    def __init__(self, index: RepositoryIndex, processor_name: str, processor_version: str):
        """
        Initialize validator.

        Args:
            index: Repository index to validate against
            processor_name: Name of the host processor, matched by processor dependencies
            processor_version: Version of the host processor
        """
        self.index = index
        self.processor_name = processor_name
        self.processor_version = processor_version

    def check(self, descriptor: PackageDescriptor) -> None:
        """
        Validate a descriptor; stops at the first failure.

        Raises:
            MalformedDescriptorError: If a mandatory field is empty
            UnsatisfiedDependencyError: If no installed version satisfies a package dependency
            UnsupportedHostVersionError: If the host version fails a processor dependency
            AlreadyInstalledError: If the package or one of its modules is already installed
        """
        self._check_mandatory(descriptor)
        for dep in descriptor.dependencies:
            if dep.processor:
                self._check_processor(dep)
            else:
                self._check_package(dep)
        self._check_components(descriptor)

    def _check_mandatory(self, descriptor: PackageDescriptor) -> None:
        for field in MANDATORY_FIELDS:
            if not getattr(descriptor, field):
                raise MalformedDescriptorError(
                    f"Package descriptor is missing mandatory attribute '{field}'",
                    field=field
                )

    def _check_package(self, dep: Dependency) -> None:
        installed = self.index.installed_versions(dep.package)
        if not any(versions.satisfies(dep.constraint, version) for version in installed):
            logger.debug(f"No installed version of {dep.package} satisfies {dep}: {installed}")
            raise UnsatisfiedDependencyError(dep.package)

    def _check_processor(self, dep: Dependency) -> None:
        if dep.processor.lower() != self.processor_name.lower():
            logger.debug(f"Ignoring dependency on foreign processor {dep.processor}")
            return
        if not versions.satisfies(dep.constraint, self.processor_version):
            raise UnsupportedHostVersionError(self.processor_name, self.processor_version)

    def _check_components(self, descriptor: PackageDescriptor) -> None:
        if descriptor.id in self.index:
            raise AlreadyInstalledError.package(descriptor.id)

        for component in descriptor.modules():
            for installed in self.index.packages_for(component.namespace):
                # other versions of the same package may share module paths
                if installed.name == descriptor.name:
                    continue
                for existing in installed.descriptor.modules(component.namespace):
                    if existing.file == component.file:
                        raise AlreadyInstalledError.component(
                            component.namespace, component.file, installed.id
                        )
