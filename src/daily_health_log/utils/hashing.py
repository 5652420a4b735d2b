"""
File hashing utilities.

Used to verify database backups after copying.
"""

import hashlib
from pathlib import Path


def compute_file_hash(file_path: str | Path, algorithm: str = "md5") -> str:
    """
    Compute hash of a file.

    Args:
        file_path: Path to the file.
        algorithm: Hash algorithm to use.

    Returns:
        Hex string of the file hash.
    """
    hash_func = hashlib.new(algorithm)

    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(4096), b""):
            hash_func.update(chunk)

    return hash_func.hexdigest()
