from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from fileconnector.formats.types import FileFormatSpec

OPTION_PATH = "path"
OPTION_GLOB = "glob"
OPTION_SHARED_FILE_SYSTEM = "sharedFileSystem"
OPTION_FORMAT = "format"
OPTION_IGNORE_FILE_NOT_FOUND = "ignoreFileNotFound"

STRUCTURAL_KEYS = (OPTION_PATH, OPTION_GLOB, OPTION_SHARED_FILE_SYSTEM)

DEFAULT_GLOB = "*"


@dataclass(frozen=True)
class ReadPlan:
    """
    Immutable, distributable description of what to read and how.

    Invariants:
    - built once per source definition, never touches the filesystem
    - ``options`` keeps insertion order and holds strings only
    - ``sampling`` plans read at most one file and one record and are
      never executed as job plans
    """

    path: str
    format: FileFormatSpec
    glob: str = DEFAULT_GLOB
    shared_file_system: bool = False
    options: Tuple[Tuple[str, str], ...] = ()
    ignore_file_not_found: bool = False
    sampling: bool = False

    # ------------------------------------------------------------------
    def option(self, key: str, default: Optional[str] = None) -> Optional[str]:
        for k, v in self.options:
            if k == key:
                return v
        return default

    def options_dict(self) -> Dict[str, str]:
        return dict(self.options)

    @property
    def format_id(self) -> str:
        return self.format.format_id

    @property
    def max_files(self) -> Optional[int]:
        return 1 if self.sampling else None

    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "glob": self.glob,
            "sharedFileSystem": self.shared_file_system,
            "ignoreFileNotFound": self.ignore_file_not_found,
            "sampling": self.sampling,
            "format": self.format.to_dict(),
            "options": [[k, v] for k, v in self.options],
        }

    @property
    def plan_id(self) -> str:
        """Stable identifier: identical plans hash identically."""
        blob = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        digest = hashlib.sha1(blob.encode("utf-8")).hexdigest()
        return f"{self.format_id}_{digest[:12]}"
