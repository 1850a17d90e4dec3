# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Package Descriptor Reader

Reads EXPath package descriptors (expath-pkg.xml) into PackageDescriptor
models, and provides the helpers used for single-file module installs:
namespace sniffing and namespace-to-path mapping.

Example descriptor:

    <package xmlns="http://expath.org/ns/pkg" spec="1.0"
             name="http://www.pkg3.com" abbrev="pkg3" version="10.0">
      <dependency package="http://www.pkg1.com" semver-min="11"/>
      <dependency processor="pkgrepo" semver="1"/>
      <xquery>
        <namespace>ns3</namespace>
        <file>mod/pkg3mod1.xql</file>
      </xquery>
    </package>
"""

import re
import xml.etree.ElementTree as ET
from pathlib import Path, PurePosixPath
from typing import List, Optional, Union
from urllib.parse import urlparse

from pydantic import ValidationError as PydanticValidationError

from .errors import MalformedDescriptorError
from .models import (
    AnyVersion,
    Component,
    ComponentType,
    Dependency,
    ExactVersions,
    PackageDescriptor,
    VersionRange,
    VersionTemplate,
)

DESCRIPTOR_FILE = "expath-pkg.xml"
PKG_NAMESPACE = "http://expath.org/ns/pkg"

# Component elements carrying plain resources rather than importable modules
RESOURCE_ELEMENTS = ("xslt", "xsd", "rng", "schematron", "nvdl", "resource")

MODULE_SUFFIXES = (".xq", ".xqm", ".xql", ".xqy", ".xquery")

_UNSAFE = re.compile(r"[^\w.-]+")
_COMMENT = re.compile(r"\(:.*?:\)", re.DOTALL)
# Optional version declaration, then the library module declaration opening the prolog
_VERSION_DECL = r"""xquery\s+(?:version\s+(["'])[^"']*\1(?:\s+encoding\s+(["'])[^"']*\2)?|encoding\s+(["'])[^"']*\3)\s*;"""
_MODULE_DECL = re.compile(
    r"""\s*(?:""" + _VERSION_DECL + r"""\s*)?module\s+namespace\s+[\w.-]+\s*=\s*(["'])(?P<uri>.*?)\4\s*;"""
)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    for child in element:
        if _local(child.tag) == name and child.text and child.text.strip():
            return child.text.strip()
    return None


def _parse_constraint(element: ET.Element):
    versions = element.get("versions")
    if versions is not None and versions.split():
        return ExactVersions(versions=tuple(versions.split()))
    template = element.get("semver")
    if template:
        return VersionTemplate(template=template.strip())
    minimum = element.get("semver-min")
    maximum = element.get("semver-max")
    if minimum or maximum:
        return VersionRange(min=minimum or None, max=maximum or None)
    return AnyVersion()


def _parse_dependency(element: ET.Element) -> Dependency:
    package = element.get("package")
    processor = element.get("processor")
    if not package and not processor:
        raise MalformedDescriptorError(
            "Dependency must declare a package or processor attribute",
            field="dependency"
        )
    return Dependency(
        package=package or None,
        processor=processor or None,
        constraint=_parse_constraint(element)
    )


def _parse_component(element: ET.Element, kind: str) -> Component:
    file = _child_text(element, "file")
    if not file:
        raise MalformedDescriptorError(f"<{kind}> component is missing <file>", field="file")
    relative = PurePosixPath(file.replace("\\", "/"))
    if relative.is_absolute() or ".." in relative.parts:
        raise MalformedDescriptorError(
            f"Component file must be relative to the package content: {file}",
            field="file"
        )

    if kind == "xquery":
        namespace = _child_text(element, "namespace") or _child_text(element, "import-uri")
        if not namespace:
            raise MalformedDescriptorError(
                f"Module {file} declares no namespace",
                field="namespace"
            )
        return Component(type=ComponentType.MODULE, file=file, namespace=namespace)

    return Component(type=ComponentType.RESOURCE, file=file)


def parse_descriptor(data: Union[bytes, str]) -> PackageDescriptor:
    """
    Parse descriptor content.

    Args:
        data: XML content of expath-pkg.xml

    Returns:
        PackageDescriptor (mandatory fields are not enforced here)

    Raises:
        MalformedDescriptorError: If the XML is not a package descriptor
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise MalformedDescriptorError(f"Descriptor is not well-formed: {e}")

    if _local(root.tag) != "package":
        raise MalformedDescriptorError(f"Unexpected descriptor root element: <{_local(root.tag)}>")

    dependencies: List[Dependency] = []
    components: List[Component] = []
    try:
        for element in root:
            kind = _local(element.tag)
            if kind == "dependency":
                dependencies.append(_parse_dependency(element))
            elif kind == "xquery" or kind in RESOURCE_ELEMENTS:
                components.append(_parse_component(element, kind))

        return PackageDescriptor(
            name=(root.get("name") or "").strip(),
            abbrev=(root.get("abbrev") or "").strip(),
            version=(root.get("version") or "").strip(),
            spec=(root.get("spec") or "").strip(),
            dependencies=tuple(dependencies),
            components=tuple(components)
        )
    except PydanticValidationError as e:
        raise MalformedDescriptorError(f"Invalid descriptor: {e}")


def read_descriptor(directory: Path) -> PackageDescriptor:
    """Read the descriptor file of an extracted or installed package directory"""
    path = Path(directory) / DESCRIPTOR_FILE
    try:
        data = path.read_bytes()
    except OSError as e:
        raise MalformedDescriptorError(f"Cannot read descriptor {path}: {e}")
    return parse_descriptor(data)


def render_descriptor(descriptor: PackageDescriptor) -> str:
    """Serialize a descriptor back to expath-pkg.xml content"""
    root = ET.Element("package", {
        "xmlns": PKG_NAMESPACE,
        "spec": descriptor.spec,
        "name": descriptor.name,
        "abbrev": descriptor.abbrev,
        "version": descriptor.version,
    })
    for dep in descriptor.dependencies:
        attrs = {"package": dep.package} if dep.package else {"processor": dep.processor}
        constraint = dep.constraint
        if isinstance(constraint, ExactVersions):
            attrs["versions"] = " ".join(constraint.versions)
        elif isinstance(constraint, VersionTemplate):
            attrs["semver"] = constraint.template
        elif isinstance(constraint, VersionRange):
            if constraint.min:
                attrs["semver-min"] = constraint.min
            if constraint.max:
                attrs["semver-max"] = constraint.max
        ET.SubElement(root, "dependency", attrs)
    for component in descriptor.components:
        if component.type == ComponentType.MODULE:
            element = ET.SubElement(root, "xquery")
            ET.SubElement(element, "namespace").text = component.namespace
        else:
            element = ET.SubElement(root, "resource")
        ET.SubElement(element, "file").text = component.file
    return ET.tostring(root, encoding="unicode")


def sanitize(identifier: str) -> str:
    """Filesystem-safe token: runs of characters outside [A-Za-z0-9_.-] become '-'"""
    return _UNSAFE.sub("-", identifier)


def module_namespace(source: str) -> Optional[str]:
    """
    Namespace URI of a library module.

    Only a `module namespace p = "uri";` declaration opening the prolog counts
    (after an optional `xquery version` declaration). Main modules, including
    ones that `import module namespace`, return None.
    """
    match = _MODULE_DECL.match(_COMMENT.sub("", source.lstrip("\ufeff")))
    return match.group("uri").strip() if match else None


def uri_to_path(uri: str) -> PurePosixPath:
    """
    Map a namespace URI to a relative path.

    Host names are reversed, other separators become directories:
        urn:isbn:12345                -> urn/isbn/12345
        http://www.example.com/a/b    -> com/example/www/a/b
        http://www.example.com/a/     -> com/example/www/a/index
    """
    parsed = urlparse(uri)
    if parsed.scheme in ("http", "https") and parsed.netloc:
        segments = list(reversed(parsed.netloc.split(".")))
        segments += parsed.path.split("/")
        trailing = parsed.path.endswith("/")
    else:
        segments = re.split(r"[:/\\]+", uri)
        trailing = uri.endswith(("/", ":"))

    parts = [sanitize(s) for s in segments if s and s not in (".", "..")]
    if trailing or not parts:
        parts.append("index")
    return PurePosixPath(*parts)
