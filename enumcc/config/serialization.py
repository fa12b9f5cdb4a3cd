"""JSON serialization and deserialization for enumeration configs."""

import json
from dataclasses import asdict
from typing import Any

from dacite import from_dict, Config as DaciteConfig

from enumcc.config.experiment import EnumerationConfig

_DACITE_CONFIG = DaciteConfig(
    cast=[tuple],
    check_types=True,
    strict=True,
)


def config_to_json(config: EnumerationConfig) -> str:
    """Serialize an EnumerationConfig to a JSON string.

    Uses sorted keys and 2-space indent for human readability and diffability.
    """
    return json.dumps(asdict(config), indent=2, sort_keys=True)


def config_from_json(json_str: str) -> EnumerationConfig:
    """Deserialize a JSON string to an EnumerationConfig.

    Uses dacite with strict=True to reject unknown keys and cast=[tuple]
    to convert the JSON tags array back to a tuple. Missing keys fall back
    to the dataclass defaults, so a partial config file is valid.
    """
    return config_from_dict(json.loads(json_str))


def config_from_dict(d: dict[str, Any]) -> EnumerationConfig:
    """Reconstruct an EnumerationConfig from a plain dictionary.

    Integer values are accepted where a float is declared, since JSON
    writers drop the trailing ``.0``.
    """
    data = dict(d)
    budget = data.get("budget")
    if isinstance(budget, dict) and isinstance(budget.get("time_limit"), int):
        data["budget"] = {**budget, "time_limit": float(budget["time_limit"])}
    if isinstance(data.get("imbalance_tolerance"), int):
        data["imbalance_tolerance"] = float(data["imbalance_tolerance"])
    return from_dict(
        data_class=EnumerationConfig,
        data=data,
        config=_DACITE_CONFIG,
    )
