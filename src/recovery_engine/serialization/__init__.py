"""Serialization module: JSON-compatible dicts for persisted engine state."""

from recovery_engine.serialization.snapshot import (
    parameters_from_dict,
    parameters_to_dict,
    snapshot_from_dict,
    snapshot_to_dict,
    snapshot_to_json_string,
)

__all__ = [
    "parameters_from_dict",
    "parameters_to_dict",
    "snapshot_from_dict",
    "snapshot_to_dict",
    "snapshot_to_json_string",
]
