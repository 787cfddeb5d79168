"""Utility modules for blocksync.

Provides:
- hashing: hash_str, source_fingerprint for content fingerprinting
- logger: get_logger for logging
"""

from blocksync.utils.hashing import hash_str, source_fingerprint
from blocksync.utils.logger import get_logger

__all__ = [
    "get_logger",
    "hash_str",
    "source_fingerprint",
]
