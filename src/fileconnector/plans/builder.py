"""
Topology builder: connector options -> ReadPlan.

Plan construction is pure: no filesystem access, no clock, no randomness.
File discovery happens later, per member, in ``fileconnector.engine``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from fileconnector.errors import ConfigurationError
from fileconnector.formats.types import FileFormatSpec, parse_bool_option
from fileconnector.plans.schema import validate_connector_options
from fileconnector.plans.types import (
    DEFAULT_GLOB,
    OPTION_FORMAT,
    OPTION_GLOB,
    OPTION_IGNORE_FILE_NOT_FOUND,
    OPTION_PATH,
    OPTION_SHARED_FILE_SYSTEM,
    STRUCTURAL_KEYS,
    ReadPlan,
)

logger = logging.getLogger(__name__)


class FileSourceBuilder:
    """
    Fluent builder for ReadPlans.

        plan = (FileSourceBuilder("/data")
                .glob("*.csv")
                .option("format", "csv")
                .build())

    ``build_sampling()`` produces the single-use variant used for schema
    inference.
    """

    def __init__(self, path: str) -> None:
        if not isinstance(path, str) or not path:
            raise ConfigurationError("path must be a non-empty string")
        self._path = path
        self._glob = DEFAULT_GLOB
        self._shared_file_system = False
        self._format: Optional[FileFormatSpec] = None
        self._options: Dict[str, str] = {}

    def glob(self, glob: str) -> "FileSourceBuilder":
        if not glob:
            raise ConfigurationError("glob must be a non-empty string")
        self._glob = glob
        return self

    def shared_file_system(self, shared: bool) -> "FileSourceBuilder":
        self._shared_file_system = bool(shared)
        return self

    def format(self, spec: FileFormatSpec) -> "FileSourceBuilder":
        self._format = spec
        return self

    def option(self, key: str, value: str) -> "FileSourceBuilder":
        if not isinstance(value, str):
            raise ConfigurationError(f"Unexpected option type: {type(value).__name__} (option '{key}')")
        self._options[key] = value
        return self

    # ------------------------------------------------------------------
    def build(self, registry=None) -> ReadPlan:
        return self._build(registry, sampling=False)

    def build_sampling(self, registry=None) -> ReadPlan:
        return self._build(registry, sampling=True)

    def _build(self, registry, *, sampling: bool) -> ReadPlan:
        spec = self._format or self._resolve_format(registry)
        plan = ReadPlan(
            path=self._path,
            format=spec,
            glob=self._glob,
            shared_file_system=self._shared_file_system,
            options=tuple(self._options.items()),
            ignore_file_not_found=parse_bool_option(self._options, OPTION_IGNORE_FILE_NOT_FOUND, False),
            sampling=sampling,
        )
        logger.debug("Built %s plan %s for %s/%s", "sampling" if sampling else "job", plan.plan_id, plan.path, plan.glob)
        return plan

    def _resolve_format(self, registry) -> FileFormatSpec:
        from fileconnector.formats.registry import default_registry

        format_id = self._options.get(OPTION_FORMAT)
        if not format_id:
            raise ConfigurationError(f"Missing required option '{OPTION_FORMAT}'")
        registry = registry or default_registry()
        plugin = registry.create(format_id)
        return plugin.parse_format(self._options)


def builder_from_options(options: Mapping[str, Any]) -> FileSourceBuilder:
    """
    Translate the option surface into a builder.

    ``path``/``glob``/``sharedFileSystem`` are structural; every other key is
    forwarded verbatim, nested mappings are flattened one level.
    """
    validate_connector_options(options)

    builder = FileSourceBuilder(options[OPTION_PATH])

    glob = options.get(OPTION_GLOB)
    if glob is not None:
        builder.glob(glob)

    shared = options.get(OPTION_SHARED_FILE_SYSTEM)
    if shared is not None:
        builder.shared_file_system(shared == "true")

    for key, value in options.items():
        if key in STRUCTURAL_KEYS:
            continue
        if isinstance(value, str):
            builder.option(key, value)
        elif isinstance(value, Mapping):
            for sub_key, sub_value in value.items():
                builder.option(sub_key, sub_value)
        else:
            raise ConfigurationError(f"Unexpected option type: {type(value).__name__}")
    return builder


def build_plan(
    options: Mapping[str, Any],
    resolved_format: Optional[FileFormatSpec] = None,
    registry=None,
) -> ReadPlan:
    builder = builder_from_options(options)
    if resolved_format is not None:
        builder.format(resolved_format)
    return builder.build(registry)


def build_sampling_plan(
    options: Mapping[str, Any],
    resolved_format: Optional[FileFormatSpec] = None,
    registry=None,
) -> ReadPlan:
    builder = builder_from_options(options)
    if resolved_format is not None:
        builder.format(resolved_format)
    return builder.build_sampling(registry)
