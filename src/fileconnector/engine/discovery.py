from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

from fileconnector.errors import ConfigurationError, NoDataError
from fileconnector.plans.types import ReadPlan

logger = logging.getLogger(__name__)


def discover_files(plan: ReadPlan) -> List[Path]:
    """
    List the files a member sees for ``plan``.

    - ``path`` is a directory: regular files matching ``glob`` below it
      (``**`` recurses), sorted by path
    - ``path`` is a file: that file, if its name matches ``glob``
    - sampling plans stop at the first file

    Zero matches raise NoDataError unless the plan tolerates empty input.
    Sampling plans never do.
    """
    base = Path(plan.path).expanduser()

    if base.is_dir():
        try:
            files = sorted(p for p in base.glob(plan.glob) if p.is_file())
        except (ValueError, NotImplementedError) as e:
            raise ConfigurationError(f"Invalid glob '{plan.glob}': {e}") from e
    elif base.is_file():
        files = [base] if base.match(plan.glob) else []
    else:
        files = []

    if plan.max_files is not None:
        files = files[: plan.max_files]

    if not files:
        if plan.sampling:
            raise NoDataError(
                f"No data found to infer schema: no file matches '{plan.glob}' in {plan.path}"
            )
        if not plan.ignore_file_not_found:
            raise NoDataError(f"No file matches '{plan.glob}' in {plan.path}")
        logger.info("No file matches '%s' in %s; reading nothing", plan.glob, plan.path)
        return []

    logger.info("Discovered %d file(s) in %s matching '%s'", len(files), plan.path, plan.glob)
    return files


def assign_files(
    files: Sequence[Path],
    member_index: int,
    member_count: int,
    shared_file_system: bool,
) -> List[Path]:
    """
    Files one member must read.

    Shared filesystem: every member sees the same sorted list, so files are
    dealt round-robin and each is read exactly once cluster-wide.
    Local filesystem: a member reads everything it can see locally.
    """
    if member_count <= 0:
        raise ConfigurationError("member_count must be positive")
    if not 0 <= member_index < member_count:
        raise ConfigurationError(f"member_index {member_index} out of range for {member_count} member(s)")

    if not shared_file_system:
        return list(files)
    return [f for i, f in enumerate(files) if i % member_count == member_index]


def split_among_processors(files: Sequence[Path], processors: int) -> List[List[Path]]:
    if processors <= 0:
        raise ConfigurationError("local parallelism must be positive")
    out: List[List[Path]] = [[] for _ in range(processors)]
    for i, f in enumerate(files):
        out[i % processors].append(f)
    return out
