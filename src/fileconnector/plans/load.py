from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from fileconnector.plans.schema import validate_plan_dict
from fileconnector.plans.types import ReadPlan


def plan_from_dict(d: Dict[str, Any], registry=None) -> ReadPlan:
    """
    Rebuild a ReadPlan from ``ReadPlan.to_dict()`` output.

    The format spec is reconstructed on this side of the boundary through
    the registry, so only primitives ever travel.
    """
    from fileconnector.formats.registry import default_registry

    validate_plan_dict(d)
    registry = registry or default_registry()

    plugin = registry.create(d["format"]["id"])
    spec = plugin.spec_from_config(d["format"]["config"])

    return ReadPlan(
        path=d["path"],
        format=spec,
        glob=d["glob"],
        shared_file_system=d["sharedFileSystem"],
        options=tuple((k, v) for k, v in d["options"]),
        ignore_file_not_found=bool(d.get("ignoreFileNotFound", False)),
        sampling=bool(d.get("sampling", False)),
    )


def dump_plan(plan: ReadPlan, outpath: Path) -> None:
    outpath = Path(outpath).expanduser().resolve()
    outpath.parent.mkdir(parents=True, exist_ok=True)
    outpath.write_text(json.dumps(plan.to_dict(), indent=2), encoding="utf-8")


def load_plan(path: Path, registry=None) -> ReadPlan:
    path = Path(path).expanduser().resolve()
    if not path.is_file():
        raise FileNotFoundError(path)

    try:
        d = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"{path}: invalid JSON") from e

    return plan_from_dict(d, registry)
