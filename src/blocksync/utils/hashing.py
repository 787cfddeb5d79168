"""Content fingerprints for snapshots and source buffers.

Snapshots are content-addressed by the digest of their canonical text, and
span metadata remembers the digest of the source it was measured against so
stale spans can be detected without keeping the old text around.

Example:
    >>> from blocksync.utils.hashing import hash_str
    >>> hash_str("hello world", truncate=16)
    'b94d27b9934d3e08'
"""

import hashlib


def hash_str(
    content: str,
    truncate: int | None = None,
    algorithm: str = "sha256",
) -> str:
    """Hash string content using specified algorithm.

    Args:
        content: String content to hash
        truncate: Truncate result to N characters (None = full hash)
        algorithm: Hash algorithm ('sha256', 'md5')

    Returns:
        Hex digest of hash, optionally truncated
    """
    hasher = hashlib.new(algorithm)
    hasher.update(content.encode("utf-8"))
    digest = hasher.hexdigest()
    return digest[:truncate] if truncate is not None else digest


def source_fingerprint(source: str) -> str:
    """Short fingerprint identifying one version of a text buffer."""
    return hash_str(source, truncate=16)
