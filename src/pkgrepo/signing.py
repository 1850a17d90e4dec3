# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
GPG Signature Verification for Package Sources

Wraps python-gnupg to verify YUM-style detached signatures (<source>.asc)
of package archives and module files before they are installed.
"""

from pathlib import Path
from typing import Optional, Tuple

import gnupg

from .errors import GPGNotFoundError, InvalidSignatureError

SIGNATURE_SUFFIX = ".asc"


def _get_gpg_instance(keyring_dir: Optional[str] = None) -> gnupg.GPG:
    """
    Get GPG instance with optional custom keyring directory.

    Args:
        keyring_dir: Optional path to custom GPG keyring directory.
                    If None, uses system default (~/.gnupg)

    Returns:
        gnupg.GPG instance

    Raises:
        GPGNotFoundError: If GPG executable is not found
    """
    try:
        if keyring_dir:
            Path(keyring_dir).mkdir(parents=True, exist_ok=True)
            gpg = gnupg.GPG(gnupghome=keyring_dir)
        else:
            gpg = gnupg.GPG()

        # Test if GPG is available
        gpg.list_keys()
        return gpg
    except (OSError, ValueError, RuntimeError) as e:
        raise GPGNotFoundError(
            f"GPG not found or not properly configured. "
            f"Please install GPG (gpg or gnupg). Error: {str(e)}"
        )


def signature_path(source: Path) -> Path:
    source = Path(source)
    return source.with_name(source.name + SIGNATURE_SUFFIX)


def verify_signature(
    filepath: str,
    signature_file: str,
    keyring_dir: Optional[str] = None
) -> Tuple[bool, str]:
    """
    Verifies a detached GPG signature against a file.

    Args:
        filepath: Path to the signed file
        signature_file: Path to the .asc signature file
        keyring_dir: Optional custom keyring directory

    Returns:
        (is_valid, error_message): error_message is empty string if valid.

    Raises:
        GPGNotFoundError: If GPG is not installed
        FileNotFoundError: If file or signature doesn't exist
    """
    gpg = _get_gpg_instance(keyring_dir)

    filepath = Path(filepath)
    signature_file = Path(signature_file)

    if not filepath.exists():
        raise FileNotFoundError(f"File not found: {filepath}")

    if not signature_file.exists():
        raise FileNotFoundError(f"Signature file not found: {signature_file}")

    with open(signature_file, 'rb') as sig_file:
        verified = gpg.verify_file(sig_file, str(filepath))

    if verified.valid:
        return (True, "")

    error_parts = []
    if verified.status == 'signature bad':
        error_parts.append("Signature does not match file content")
    elif verified.status == 'no public key':
        error_parts.append(f"Public key not found: {verified.key_id}")
        error_parts.append("Publisher may not be trusted")
    elif verified.status:
        error_parts.append(f"Verification failed: {verified.status}")

    if verified.stderr:
        error_parts.append(f"GPG error: {verified.stderr}")

    error_message = ". ".join(error_parts) if error_parts else "Signature verification failed"
    return (False, error_message)


def require_valid_signature(source: Path, keyring_dir: Optional[str] = None) -> None:
    """
    Verify the detached signature next to an install source.

    Raises:
        InvalidSignatureError: If the signature is missing or does not verify
        GPGNotFoundError: If GPG is not installed
    """
    sig = signature_path(source)
    if not sig.exists():
        raise InvalidSignatureError(
            f"Missing signature file: {sig.name}",
            details={"source": str(source)}
        )

    valid, message = verify_signature(str(source), str(sig), keyring_dir)
    if not valid:
        raise InvalidSignatureError(
            f"Invalid signature for {Path(source).name}: {message}",
            details={"source": str(source)}
        )


def import_public_key(key_data: str, keyring_dir: Optional[str] = None) -> str:
    """
    Imports a publisher's public key into the keyring.

    Args:
        key_data: ASCII-armored public key
        keyring_dir: Optional custom keyring directory

    Returns:
        Fingerprint of the imported key

    Raises:
        GPGNotFoundError: If GPG is not installed
        ValueError: If import fails
    """
    gpg = _get_gpg_instance(keyring_dir)

    result = gpg.import_keys(key_data)

    if result.count == 0:
        raise ValueError(f"Failed to import key. {result.stderr}")

    if result.fingerprints:
        return result.fingerprints[0]
    raise ValueError("Key imported but no fingerprint returned")
