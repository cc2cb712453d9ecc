"""Content hash utilities for deployment and conflict detection."""

import hashlib
from pathlib import Path

_CHUNK_SIZE = 65536


def compute_bytes_hash(content: bytes) -> str:
    """Compute SHA-256 hash of raw content.

    Returns:
        Hash string in format "sha256:<hex_digest>"
    """
    return f"sha256:{hashlib.sha256(content).hexdigest()}"


def compute_file_hash(file_path: Path) -> str:
    """Compute SHA-256 hash of file bytes.

    Hashing bytes (not decoded text) keeps the comparison byte-identical.

    Raises:
        OSError: If the file cannot be read
    """
    digest = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return f"sha256:{digest.hexdigest()}"


def hash_if_exists(file_path: Path) -> str | None:
    """Hash a file, returning None if it is missing or not a regular file."""
    if not file_path.is_file():
        return None
    return compute_file_hash(file_path)


def fingerprint_parts(parts: list[str]) -> str:
    """Combine ordered fingerprint components into one stable digest.

    Parts may hold undecodable file names (lone surrogates from os.walk);
    surrogateescape maps them back to their original bytes.
    """
    digest = hashlib.sha256()
    for part in parts:
        digest.update(part.encode("utf-8", "surrogateescape"))
        digest.update(b"\0")
    return digest.hexdigest()
