"""Deterministic config hashing using SHA-256 over sorted JSON."""

import hashlib
import json
from dataclasses import asdict
from typing import Any

from enumcc.config.experiment import EnumerationConfig

# Fields that only describe where a run writes, not what it enumerates.
_NON_SEARCH_FIELDS = ("output_dir", "description", "tags")


def config_hash(config: Any, exclude_fields: list[str] | None = None) -> str:
    """Deterministic SHA-256 hash of a config object.

    Args:
        config: Any dataclass instance (or sub-config).
        exclude_fields: Optional list of top-level field names to drop
            before hashing.

    Returns:
        First 16 hex characters of the SHA-256 hash.
    """
    d = asdict(config)
    for name in exclude_fields or []:
        d.pop(name, None)
    serialized = json.dumps(
        d,
        sort_keys=True,
        ensure_ascii=True,
        separators=(",", ":"),
        indent=None,
    )
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()[:16]


def search_config_hash(config: EnumerationConfig) -> str:
    """Hash of the parameters that determine what a run enumerates.

    Two configs differing only in output location, description or tags
    hash identically.
    """
    return config_hash(config, exclude_fields=list(_NON_SEARCH_FIELDS))
