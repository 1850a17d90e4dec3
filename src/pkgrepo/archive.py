# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Archive Provider

Single responsibility: recognise and unpack package archives (.xar files are
zip containers).
"""

import logging
import zipfile
from pathlib import Path

from .errors import IOFailureError

logger = logging.getLogger(__name__)


def is_archive(path: Path) -> bool:
    """True if the file is a zip container, whatever its suffix"""
    path = Path(path)
    return path.is_file() and zipfile.is_zipfile(path)


def extract(archive_path: Path, dest_dir: Path) -> int:
    """
    Extract an archive into a directory.

    Args:
        archive_path: Path to the archive
        dest_dir: Target directory (created if missing)

    Returns:
        Number of extracted entries

    Raises:
        IOFailureError: If the archive is unreadable or a member would be
                        written outside dest_dir
    """
    dest_dir = Path(dest_dir)
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        root = dest_dir.resolve()
        with zipfile.ZipFile(archive_path, "r") as zip_file:
            members = zip_file.infolist()
            for member in members:
                target = (root / member.filename).resolve()
                if target != root and root not in target.parents:
                    raise IOFailureError(
                        f"Archive member escapes extraction directory: {member.filename}",
                        path=str(archive_path)
                    )
            zip_file.extractall(root)
    except zipfile.BadZipFile as e:
        raise IOFailureError(f"Corrupt archive {archive_path}: {e}", path=str(archive_path))
    except OSError as e:
        raise IOFailureError(f"Failed to extract {archive_path}: {e}", path=str(archive_path))

    logger.debug(f"Extracted {len(members)} entries from {archive_path} to {dest_dir}")
    return len(members)
