"""ContextVar-based synchronization configuration for blocksync.

Provides context-local configuration using Python's ContextVars (PEP 567).
A Session sets its config once; the builder, renderer, stabilizer and text
patcher read it from the context instead of taking it as a parameter.

Usage:
    from blocksync.config import SyncConfig, sync_config_context

    with sync_config_context(SyncConfig(probe_limit=50)):
        change_set = reconcile(old_text, new_text)

"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SyncConfig:
    """Immutable synchronization configuration.

    Attributes:
        probe_limit: Maximum number of +1 probes when a renumbered pseudo-id
            collides with an id already in use. Exceeding it is fatal.
        snapshot_indent: JSON indentation of canonical snapshots. Pseudo-ids
            are line numbers, so this must stay > 0.
        default_indent: Indent step used by generation rules for nodes that
            were created in the editor and never parsed.
        trailing_separator: Default for the per-slot "separator after last
            sibling" flag on freshly generated tokens.
        allow_full_render_fallback: Let the text patcher regenerate the whole
            document when a minimal splice cannot be computed. When False the
            patcher raises instead.
        source_file: Optional path reported in parse errors and spans.

    """

    probe_limit: int = 1000
    snapshot_indent: int = 2
    default_indent: str = "  "
    trailing_separator: bool = False
    allow_full_render_fallback: bool = True
    source_file: str | None = None

    @classmethod
    def from_dict(cls, config_dict: dict) -> "SyncConfig":
        """Create SyncConfig from dictionary.

        Only includes keys that are valid SyncConfig fields; unknown keys
        are silently ignored.

        Example:
            >>> SyncConfig.from_dict({"probe_limit": 10, "colour": "red"}).probe_limit
            10

        """
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in config_dict.items() if k in valid_fields}
        return cls(**filtered)


# Module-level default config (reused, never recreated)
_DEFAULT_CONFIG: SyncConfig = SyncConfig()

_sync_config: ContextVar[SyncConfig] = ContextVar(
    "sync_config",
    default=_DEFAULT_CONFIG,
)


def get_sync_config() -> SyncConfig:
    """Get the active SyncConfig for this context."""
    return _sync_config.get()


def set_sync_config(config: SyncConfig) -> None:
    """Set synchronization configuration for current context.

    Args:
        config: SyncConfig instance to use for this context.

    """
    _sync_config.set(config)


def reset_sync_config() -> None:
    """Reset to the module-level default configuration."""
    _sync_config.set(_DEFAULT_CONFIG)


@contextmanager
def sync_config_context(config: SyncConfig) -> Iterator[None]:
    """Context manager for temporary config changes.

    Restores the previous config even if an exception is raised.

    Args:
        config: SyncConfig to use within the context.

    Yields:
        None

    """
    previous = _sync_config.get()
    _sync_config.set(config)
    try:
        yield
    finally:
        _sync_config.set(previous)


__all__ = [
    "SyncConfig",
    "get_sync_config",
    "set_sync_config",
    "reset_sync_config",
    "sync_config_context",
]
