from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from fileconnector.errors import ConfigurationError
from fileconnector.formats.types import DECODE_ERROR_POLICIES, UNKNOWN_FIELDS_POLICIES, parse_bool_option
from fileconnector.metadata.fields import FieldType, MappingField

# ---------------------------------------------------------------------------
# Settings profiles (optional presets)
# ---------------------------------------------------------------------------

SETTINGS_PROFILES: Dict[str, Dict[str, Any]] = {
    "lenient": {"unknown_fields": "ignore", "on_decode_error": "skip"},
    "strict": {"unknown_fields": "fail", "on_decode_error": "fail"},
}


def _option_str(val: Any) -> Any:
    if isinstance(val, bool):
        return "true" if val else "false"
    if isinstance(val, (int, float)):
        return str(val)
    if isinstance(val, dict):
        return {k: _option_str(x) for k, x in val.items()}
    return val


# ---------------------------------------------------------------------------
# Source definition (YAML)
# ---------------------------------------------------------------------------

class FieldDefinition(BaseModel):
    name: str
    type: str = "VARCHAR"
    external_name: Optional[str] = Field(default=None, alias="externalName")

    model_config = {"populate_by_name": True}

    def to_mapping_field(self) -> MappingField:
        return MappingField(self.name, FieldType.parse(self.type), self.external_name)


class SourceDefinition(BaseModel):
    # A named file source: connector options plus optional declared fields
    name: str
    options: Dict[str, Any]
    fields: List[FieldDefinition] = Field(default_factory=list)

    @field_validator("options")
    @classmethod
    def _stringify_options(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        # YAML turns `true` / `10` into bool / int; connector options are strings
        return {k: _option_str(val) for k, val in v.items()}

    def to_mapping_fields(self) -> List[MappingField]:
        return [f.to_mapping_field() for f in self.fields]


def load_source_yaml(path: str | Path) -> SourceDefinition:
    """
    Load a source definition:

    name: trades
    options:
      path: /data
      glob: "*.csv"
      format: csv
    fields:
      - {name: id, type: BIGINT}
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Source file not found: {p}")
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{p}: expected a mapping at top level")
    try:
        return SourceDefinition.model_validate(raw)
    except ValueError as e:
        raise ConfigurationError(f"{p}: invalid source definition: {e}") from e


# ---------------------------------------------------------------------------
# ConnectorSettings
# ---------------------------------------------------------------------------

@dataclass
class ConnectorSettings:
    """
    Engine topology plus default leniency for formats that support it.

    Fields:
      member_count, local_parallelism, transform_parallelism: topology
      preserve_order: keep per-file order through transforms
      unknown_fields, on_decode_error: defaults applied when options omit them
    """

    member_count: int = 1
    local_parallelism: int = 2
    transform_parallelism: int = 2
    preserve_order: bool = True
    unknown_fields: str = "ignore"
    on_decode_error: str = "fail"

    @classmethod
    def from_config(cls, cfg: Dict[str, Any] | None) -> "ConnectorSettings":
        """
        settings:
          profile: strict
          local_parallelism: 4
        """
        if cfg is None:
            return cls()

        cfg = dict(cfg)
        profile_name = cfg.pop("profile", None)
        if profile_name and profile_name not in SETTINGS_PROFILES:
            raise ConfigurationError(
                f"Unknown settings profile '{profile_name}' (known: {', '.join(sorted(SETTINGS_PROFILES))})"
            )
        profile_data = SETTINGS_PROFILES.get(profile_name, {}) if profile_name else {}
        merged = {**profile_data, **cfg}

        unknown_fields = str(merged.get("unknown_fields", "ignore"))
        if unknown_fields not in UNKNOWN_FIELDS_POLICIES:
            raise ConfigurationError(f"Invalid unknown_fields: {unknown_fields!r}")
        on_decode_error = str(merged.get("on_decode_error", "fail"))
        if on_decode_error not in DECODE_ERROR_POLICIES:
            raise ConfigurationError(f"Invalid on_decode_error: {on_decode_error!r}")

        return cls(
            member_count=int(merged.get("member_count", 1)),
            local_parallelism=int(merged.get("local_parallelism", 2)),
            transform_parallelism=int(merged.get("transform_parallelism", 2)),
            preserve_order=parse_bool_option(merged, "preserve_order", True),
            unknown_fields=unknown_fields,
            on_decode_error=on_decode_error,
        )

    def apply_defaults(self, options: Dict[str, Any]) -> Dict[str, Any]:
        """Fill leniency options the caller did not set."""
        out = dict(options)
        out.setdefault("unknownFields", self.unknown_fields)
        out.setdefault("onDecodeError", self.on_decode_error)
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "member_count": self.member_count,
            "local_parallelism": self.local_parallelism,
            "transform_parallelism": self.transform_parallelism,
            "preserve_order": self.preserve_order,
            "unknown_fields": self.unknown_fields,
            "on_decode_error": self.on_decode_error,
        }
