"""Run summary validation and writing.

Uses a Python validation function (not jsonschema) to check required
fields, types and count consistency before writing summary.json.
"""

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from enumcc.config.experiment import EnumerationConfig
from enumcc.config.hashing import config_hash, search_config_hash
from enumcc.enumeration.controller import EnumerationResult, TerminationReason
from enumcc.results.run_id import generate_run_id

SUMMARY_FILENAME = "summary.json"
SCHEMA_VERSION = "1.0"

REQUIRED_TOP_FIELDS = {
    "schema_version",
    "run_id",
    "timestamp",
    "description",
    "tags",
    "config",
    "termination",
    "metrics",
}

REQUIRED_SCALARS = (
    "n_solutions",
    "optimal_imbalance",
    "n_passes",
    "jump_queries",
    "elapsed_seconds",
    "certified_complete",
)

TIMELINE_FIELDS = (
    "pass_index",
    "neighborhood_solutions",
    "jump_queries",
    "duplicates",
    "jump_accepted",
    "elapsed",
    "registry_size",
)


def validate_summary(summary: dict[str, Any]) -> list[str]:
    """Validate a summary dict.

    Returns a list of error strings. An empty list means the summary is valid.

    Checks:
    - All required top-level fields are present
    - termination.reason is a known reason
    - metrics.scalars holds every required scalar
    - timestamp is ISO 8601
    - timeline entries carry every per-pass field
    - solutions (if present) match the solution count
    """
    errors: list[str] = []

    missing = REQUIRED_TOP_FIELDS - set(summary.keys())
    if missing:
        errors.append(f"Missing required top-level fields: {sorted(missing)}")

    if "schema_version" in summary and not isinstance(summary["schema_version"], str):
        errors.append("schema_version must be a string")

    if "tags" in summary and not isinstance(summary["tags"], list):
        errors.append("tags must be a list")

    if "config" in summary and not isinstance(summary["config"], dict):
        errors.append("config must be a dict")

    if "timestamp" in summary:
        ts = summary["timestamp"]
        if not isinstance(ts, str):
            errors.append("timestamp must be a string")
        else:
            try:
                datetime.fromisoformat(ts)
            except ValueError:
                errors.append("timestamp must be in ISO 8601 format")

    if "termination" in summary:
        termination = summary["termination"]
        if not isinstance(termination, dict):
            errors.append("termination must be a dict")
        elif termination.get("reason") not in {r.value for r in TerminationReason}:
            errors.append(
                f"termination.reason must be one of "
                f"{sorted(r.value for r in TerminationReason)}"
            )

    scalars: dict[str, Any] = {}
    if "metrics" in summary:
        metrics = summary["metrics"]
        if not isinstance(metrics, dict):
            errors.append("metrics must be a dict")
        elif not isinstance(metrics.get("scalars"), dict):
            errors.append("metrics.scalars is required")
        else:
            scalars = metrics["scalars"]
            for name in REQUIRED_SCALARS:
                if name not in scalars:
                    errors.append(f"metrics.scalars missing field: {name}")

            timeline = metrics.get("timeline", [])
            if not isinstance(timeline, list):
                errors.append("metrics.timeline must be a list")
            else:
                for i, entry in enumerate(timeline):
                    if not isinstance(entry, dict):
                        errors.append(f"metrics.timeline[{i}] must be a dict")
                        continue
                    for name in TIMELINE_FIELDS:
                        if name not in entry:
                            errors.append(f"metrics.timeline[{i}] missing field: {name}")

    solutions = summary.get("solutions")
    if solutions is not None:
        if not isinstance(solutions, list):
            errors.append("solutions must be a list")
        elif "n_solutions" in scalars and len(solutions) != scalars["n_solutions"]:
            errors.append(
                f"solutions length ({len(solutions)}) != "
                f"metrics.scalars.n_solutions ({scalars['n_solutions']})"
            )

    return errors


def build_summary(
    config: EnumerationConfig, result: EnumerationResult, run_id: str | None = None
) -> dict[str, Any]:
    """Assemble the summary dict for one finished run."""
    return {
        "schema_version": SCHEMA_VERSION,
        "run_id": run_id or generate_run_id(config),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "description": config.description,
        "tags": list(config.tags),
        "config": asdict(config),
        "termination": {
            "reason": str(result.reason),
            "exceeded_budget": result.exceeded_budget,
        },
        "metrics": {
            "scalars": {
                "n_solutions": len(result.solutions),
                "optimal_imbalance": result.optimal_imbalance,
                "n_passes": len(result.passes),
                "jump_queries": result.jump_queries,
                "elapsed_seconds": result.elapsed,
                "certified_complete": result.certified_complete,
            },
            "timeline": [asdict(record) for record in result.passes],
        },
        "solutions": [p.canonical().tolist() for p in result.solutions],
        "metadata": {
            "config_hash": config_hash(config),
            "search_config_hash": search_config_hash(config),
        },
    }


def write_summary(
    config: EnumerationConfig,
    result: EnumerationResult,
    output_dir: str | Path,
) -> Path:
    """Validate and write summary.json into output_dir.

    Returns:
        Path of the written file.

    Raises:
        ValueError: If the assembled summary fails validation.
    """
    summary = build_summary(config, result)

    errors = validate_summary(summary)
    if errors:
        raise ValueError(
            "Summary validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )

    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / SUMMARY_FILENAME
    with open(path, "w") as f:
        json.dump(summary, f, indent=2)
    return path


def load_summary(summary_path: str | Path) -> dict[str, Any]:
    """Load and validate a summary.json file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the loaded summary fails validation.
    """
    path = Path(summary_path)
    with open(path) as f:
        summary = json.load(f)

    errors = validate_summary(summary)
    if errors:
        raise ValueError(
            f"Summary validation failed for {path}:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    return summary
