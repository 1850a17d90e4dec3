# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Version Matcher

Single responsibility: compare dotted version strings and evaluate
dependency constraints. No state.

Supported constraint forms (no general semver ranges):
- exact set:  installed equals one of the listed versions
- template:   installed starts with the template's components ("12.7"
              matches "12.7" and "12.7.3" but never "12.0")
- range:      inclusive min and/or max bound
"""

import re
from typing import Iterable, List, Optional

from .models import AnyVersion, ExactVersions, VersionConstraint, VersionRange, VersionTemplate

_LEADING_DIGITS = re.compile(r"\d+")


def _components(version: str) -> List[str]:
    return version.strip().split(".")


def _number(component: str) -> int:
    match = _LEADING_DIGITS.match(component.strip())
    return int(match.group()) if match else 0


def compare_versions(a: str, b: str) -> int:
    """
    Compare two dotted versions component-wise as integers.

    Missing trailing components count as 0, so "1.0" equals "1".

    Returns:
        -1 if a < b, 0 if equal, 1 if a > b
    """
    left = [_number(c) for c in _components(a)]
    right = [_number(c) for c in _components(b)]
    length = max(len(left), len(right))
    left += [0] * (length - len(left))
    right += [0] * (length - len(right))

    for x, y in zip(left, right):
        if x != y:
            return -1 if x < y else 1
    return 0


def matches_exact(installed: str, versions: Iterable[str]) -> bool:
    return any(installed == version for version in versions)


def matches_template(installed: str, template: str) -> bool:
    """True iff every component of the template equals the one at the same position."""
    required = _components(template)
    actual = _components(installed)
    if len(required) > len(actual):
        return False
    return all(r == a for r, a in zip(required, actual))


def matches_range(installed: str, minimum: Optional[str] = None, maximum: Optional[str] = None) -> bool:
    if minimum is not None and compare_versions(installed, minimum) < 0:
        return False
    if maximum is not None and compare_versions(installed, maximum) > 0:
        return False
    return True


def satisfies(constraint: VersionConstraint, installed: str) -> bool:
    """
    Check an installed version against a dependency constraint.

    Args:
        constraint: The dependency's constraint variant
        installed: Version string of the installed package (or host)

    Returns:
        True if the constraint accepts the version
    """
    if isinstance(constraint, ExactVersions):
        return matches_exact(installed, constraint.versions)
    if isinstance(constraint, VersionTemplate):
        return matches_template(installed, constraint.template)
    if isinstance(constraint, VersionRange):
        return matches_range(installed, constraint.min, constraint.max)
    if isinstance(constraint, AnyVersion):
        return True
    raise TypeError(f"Unknown version constraint: {constraint!r}")
