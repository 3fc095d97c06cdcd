# fileconnector/plans/schema.py

from __future__ import annotations

from typing import Any, Dict, Mapping

import jsonschema
from jsonschema.exceptions import best_match

from fileconnector.errors import ConfigurationError

_BOOL_STRING = {"type": "string", "enum": ["true", "false"]}

CONNECTOR_OPTIONS_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["path"],
    "properties": {
        "path": {"type": "string", "minLength": 1},
        "glob": {"type": "string", "minLength": 1},
        "sharedFileSystem": _BOOL_STRING,
        "ignoreFileNotFound": _BOOL_STRING,
        "format": {"type": "string", "minLength": 1},
    },
    "additionalProperties": {
        "anyOf": [
            {"type": "string"},
            {"type": "object", "additionalProperties": {"type": "string"}},
        ]
    },
}

_OPTIONS_VALIDATOR = jsonschema.Draft7Validator(CONNECTOR_OPTIONS_SCHEMA)


def check_option_types(options: Mapping[str, Any]) -> None:
    """Only strings and one level of string mappings are accepted."""
    for key, value in options.items():
        if not isinstance(key, str):
            raise ConfigurationError(f"Option keys must be strings, got {key!r}")
        if isinstance(value, str):
            continue
        if isinstance(value, Mapping):
            for sub_key, sub_value in value.items():
                if not isinstance(sub_value, str):
                    raise ConfigurationError(
                        f"Unexpected option type: {type(sub_value).__name__} (option '{key}.{sub_key}')"
                    )
            continue
        raise ConfigurationError(f"Unexpected option type: {type(value).__name__} (option '{key}')")


def validate_connector_options(options: Mapping[str, Any]) -> None:
    """
    Structural validation of the connector option surface.

    Raises ConfigurationError; never touches the filesystem.
    """
    if not isinstance(options, Mapping):
        raise ConfigurationError("Connector options must be a mapping")

    check_option_types(options)

    doc = {k: (dict(v) if isinstance(v, Mapping) else v) for k, v in options.items()}
    err = best_match(_OPTIONS_VALIDATOR.iter_errors(doc))
    if err is not None:
        where = ".".join(str(p) for p in err.absolute_path)
        prefix = f"option '{where}': " if where else ""
        raise ConfigurationError(f"Invalid connector options: {prefix}{err.message}")


def validate_plan_dict(d: Dict[str, Any]) -> None:
    """
    Structural validation for serialized ReadPlan payloads.

    This validates the *serialized* representation, not the dataclass.
    """

    if not isinstance(d, dict):
        raise ValueError("ReadPlan payload must be a dict")

    # -------------------------
    # Required top-level keys
    # -------------------------
    required_top = {
        "path": str,
        "glob": str,
        "sharedFileSystem": bool,
        "format": dict,
        "options": list,
    }

    for key, typ in required_top.items():
        if key not in d:
            raise ValueError(f"Missing ReadPlan field: '{key}'")
        if not isinstance(d[key], typ):
            raise ValueError(f"Field '{key}' must be of type {typ.__name__}")

    if not d["path"]:
        raise ValueError("path must not be empty")

    # -------------------------
    # Format block
    # -------------------------
    fmt = d["format"]
    if "id" not in fmt or "config" not in fmt:
        raise ValueError("format must contain 'id' and 'config'")
    if not isinstance(fmt["id"], str):
        raise ValueError("format.id must be a string")
    if not isinstance(fmt["config"], dict):
        raise ValueError("format.config must be a dict")

    # -------------------------
    # Options
    # -------------------------
    for item in d["options"]:
        if (
            not isinstance(item, (list, tuple))
            or len(item) != 2
            or not all(isinstance(x, str) for x in item)
        ):
            raise ValueError("options must be a list of [key, value] string pairs")
