# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Repository Data Models

Defines data structures for the package repository: package descriptors,
dependencies with their version constraints, components, installed package
records, resolved modules and transaction records.

Descriptors are immutable once parsed.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ConstraintKind(str, Enum):
    """Which version rule a dependency carries"""
    ANY = "any"
    EXACT = "exact"
    TEMPLATE = "template"
    RANGE = "range"


class AnyVersion(BaseModel):
    """No version constraint: any installed version satisfies the dependency"""
    model_config = ConfigDict(frozen=True)

    kind: Literal[ConstraintKind.ANY] = ConstraintKind.ANY


class ExactVersions(BaseModel):
    """Installed version must equal one of `versions`"""
    model_config = ConfigDict(frozen=True)

    kind: Literal[ConstraintKind.EXACT] = ConstraintKind.EXACT
    versions: Tuple[str, ...]

    @model_validator(mode="after")
    def _not_empty(self) -> "ExactVersions":
        if not self.versions:
            raise ValueError("Exact version set cannot be empty")
        return self


class VersionTemplate(BaseModel):
    """Installed version must start with the template's dotted components"""
    model_config = ConfigDict(frozen=True)

    kind: Literal[ConstraintKind.TEMPLATE] = ConstraintKind.TEMPLATE
    template: str


class VersionRange(BaseModel):
    """Inclusive numeric bounds; at least one must be present"""
    model_config = ConfigDict(frozen=True)

    kind: Literal[ConstraintKind.RANGE] = ConstraintKind.RANGE
    min: Optional[str] = None
    max: Optional[str] = None

    @model_validator(mode="after")
    def _has_bound(self) -> "VersionRange":
        if self.min is None and self.max is None:
            raise ValueError("Version range needs a min or max bound")
        return self


VersionConstraint = Annotated[
    Union[AnyVersion, ExactVersions, VersionTemplate, VersionRange],
    Field(discriminator="kind")
]


class Dependency(BaseModel):
    """
    Dependency on another package or on the host processor.

    Exactly one of `package` or `processor` is set.
    """
    model_config = ConfigDict(frozen=True)

    package: Optional[str] = None
    processor: Optional[str] = None
    constraint: VersionConstraint = Field(default_factory=AnyVersion)

    @model_validator(mode="after")
    def _one_target(self) -> "Dependency":
        if bool(self.package) == bool(self.processor):
            raise ValueError("Dependency must name either a package or a processor")
        return self

    @property
    def target(self) -> str:
        return self.package or self.processor or ""

    def __str__(self) -> str:
        kind = "processor" if self.processor else "package"
        return f"{kind}:{self.target} ({self.constraint.kind.value})"


class ComponentType(str, Enum):
    """Type of file contributed by a package"""
    MODULE = "module"
    RESOURCE = "resource"


class Component(BaseModel):
    """A single file of a package; modules are bound to a namespace"""
    model_config = ConfigDict(frozen=True)

    type: ComponentType
    file: str
    namespace: Optional[str] = None

    @model_validator(mode="after")
    def _module_namespace(self) -> "Component":
        if self.type == ComponentType.MODULE and not self.namespace:
            raise ValueError(f"Module component {self.file} has no namespace")
        return self


class PackageDescriptor(BaseModel):
    """
    Parsed package descriptor.

    Mandatory fields may still be empty here; PackageValidator rejects them.
    """
    model_config = ConfigDict(frozen=True)

    name: str = ""
    abbrev: str = ""
    version: str = ""
    spec: str = ""
    dependencies: Tuple[Dependency, ...] = ()
    components: Tuple[Component, ...] = ()

    @property
    def id(self) -> str:
        """Package identifier: <name>-<version>"""
        return f"{self.name}-{self.version}"

    def modules(self, namespace: Optional[str] = None) -> Tuple[Component, ...]:
        """Module components, optionally restricted to one namespace"""
        return tuple(
            c for c in self.components
            if c.type == ComponentType.MODULE and (namespace is None or c.namespace == namespace)
        )

    def namespaces(self) -> Tuple[str, ...]:
        seen: Dict[str, None] = {}
        for component in self.modules():
            seen[component.namespace] = None
        return tuple(seen)

    def __str__(self) -> str:
        return self.id


class InstalledPackage(BaseModel):
    """Index entry for an installed package"""
    model_config = ConfigDict(frozen=True)

    id: str
    directory: str
    descriptor: PackageDescriptor

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def version(self) -> str:
        return self.descriptor.version


class ResolvedModule(BaseModel):
    """Module file resolved for a namespace; package_id is None for URN modules"""
    model_config = ConfigDict(frozen=True)

    package_id: Optional[str]
    namespace: str
    path: Path


class TransactionStatus(str, Enum):
    """Transaction status"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


class TransactionOperation(str, Enum):
    """Type of transaction operation"""
    INSTALL = "install"
    DELETE = "delete"


class TransactionRecord(BaseModel):
    """Transaction record for install/delete operations"""
    id: str
    operation: TransactionOperation
    target: str
    status: TransactionStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    package_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "id": self.id,
            "operation": self.operation.value,
            "target": self.target,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "package_id": self.package_id,
            "error": self.error
        }
