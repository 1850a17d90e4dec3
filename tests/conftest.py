# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Test Fixtures and Utilities for Repository Tests

Builds a repository with two installed packages and package archives to
install into it:

- pkg1 (http://www.pkg1.com-12.0, dir "pkg1"): ns1, ns2; depends on pkg2
- pkg2 (http://www.pkg2.com-10.0, dir "pkg2"): ns1, ns3
"""

import logging
import os
import sys
import zipfile
from pathlib import Path
from typing import Dict, Optional

import pytest

# Add src to path for imports when the package is not installed
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from pkgrepo.config import RepositoryConfig
from pkgrepo.index import RepositoryIndex
from pkgrepo.manager import RepositoryManager
from pkgrepo.transactions import TransactionLogger
from pkgrepo.validator import PackageValidator


PKG1 = "http://www.pkg1.com"
PKG2 = "http://www.pkg2.com"
PKG3 = "http://www.pkg3.com"
PKG4 = "http://www.pkg4.com"
PKG5 = "http://www.pkg5.com"
PKG1ID = PKG1 + "-12.0"
PKG2ID = PKG2 + "-10.0"
PKG3ID = PKG3 + "-10.0"
PKG4ID = PKG4 + "-2.0"

HOST_NAME = "pkgrepo"
HOST_VERSION = "8.0"


# ============================================================================
# Builders
# ============================================================================

def desc(name: str, abbrev: str, version: str, content: str = "", spec: str = "1.0") -> str:
    """Returns an expath-pkg.xml descriptor"""
    return (
        f"<package xmlns='http://expath.org/ns/pkg' spec='{spec}' "
        f"name='{name}' abbrev='{abbrev}' version='{version}'>{content}</package>"
    )


def xquery(namespace: str, file: str) -> str:
    return f"<xquery><namespace>{namespace}</namespace><file>{file}</file></xquery>"


def library_module(namespace: str, result: str) -> str:
    return (
        f'module namespace m = "{namespace}";\n'
        f'declare function m:test() {{ "{result}" }};\n'
    )


def write_package(root: Path, directory: str, descriptor: str, files: Dict[str, str]) -> Path:
    """Write an installed package directory (descriptor plus content files)"""
    package_dir = root / directory
    package_dir.mkdir(parents=True)
    (package_dir / "expath-pkg.xml").write_text(descriptor)
    for relative, text in files.items():
        path = package_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
    return package_dir


def make_xar(path: Path, descriptor: Optional[str], files: Dict[str, str]) -> Path:
    """Write a .xar archive with the descriptor at its root"""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zip_file:
        if descriptor is not None:
            zip_file.writestr("expath-pkg.xml", descriptor)
        for relative, text in files.items():
            zip_file.writestr(relative, text)
    return path


# ============================================================================
# Repository Fixtures
# ============================================================================

@pytest.fixture
def repo_root(tmp_path):
    """Repository root with pkg1 and pkg2 installed"""
    root = tmp_path / "repo"
    write_package(
        root, "pkg1",
        desc(PKG1, "pkg1", "12.0",
             f"<dependency package='{PKG2}'/>"
             + xquery("ns1", "pkg1mod1.xql")
             + xquery("ns2", "pkg1mod2.xql")),
        {
            "pkg1/pkg1mod1.xql": library_module("ns1", "pkg1mod1"),
            "pkg1/pkg1mod2.xql": library_module("ns2", "pkg2mod2"),
        }
    )
    write_package(
        root, "pkg2",
        desc(PKG2, "pkg2", "10.0",
             xquery("ns1", "pkg2mod1.xql") + xquery("ns3", "pkg2mod2.xql")),
        {
            "pkg2/pkg2mod1.xql": library_module("ns1", "pkg2mod1"),
            "pkg2/pkg2mod2.xql": library_module("ns3", "pkg2mod2"),
        }
    )
    return root


@pytest.fixture
def index(repo_root):
    """Loaded repository index"""
    repo_index = RepositoryIndex(repo_root)
    repo_index.load()
    return repo_index


@pytest.fixture
def validator(index):
    return PackageValidator(index, processor_name=HOST_NAME, processor_version=HOST_VERSION)


@pytest.fixture
def config(repo_root):
    return RepositoryConfig(
        repo_path=str(repo_root),
        processor_name=HOST_NAME,
        processor_version=HOST_VERSION,
        log_format="text"
    )


@pytest.fixture
def transaction_logger(config):
    return TransactionLogger(config.transaction_log_path)


@pytest.fixture
def manager(index, config, transaction_logger):
    return RepositoryManager(index, config=config, transaction_logger=transaction_logger)


# ============================================================================
# Package Source Fixtures
# ============================================================================

@pytest.fixture
def sources(tmp_path):
    """Directory holding installable archives and module files"""
    return tmp_path / "sources"


@pytest.fixture
def pkg3_xar(sources):
    """pkg3 10.0 without dependencies"""
    return make_xar(
        sources / "pkg3.xar",
        desc(PKG3, "pkg3", "10.0", xquery("ns4", "mod/pkg3mod1.xql")),
        {"pkg3/mod/pkg3mod1.xql": library_module("ns4", "pkg3mod1")}
    )


@pytest.fixture
def pkg4_xar(sources):
    """pkg4 2.0 depending on pkg3"""
    return make_xar(
        sources / "pkg4.xar",
        desc(PKG4, "pkg4", "2.0",
             f"<dependency package='{PKG3}'/>" + xquery("ns5", "mod/pkg4mod1.xql")),
        {"pkg4/mod/pkg4mod1.xql": library_module("ns5", "pkg4mod1")}
    )


@pytest.fixture
def urn_module(sources):
    """Standalone library module for urn:isbn:12345"""
    path = sources / "12345.xqm"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(library_module("urn:isbn:12345", "isbn"))
    return path


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by RepositoryManager.from_config"""
    yield
    logger = logging.getLogger("pkgrepo")
    logger.handlers = []
    logger.setLevel(logging.NOTSET)
