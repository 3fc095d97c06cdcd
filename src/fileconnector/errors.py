from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class ConnectorError(Exception):
    """Base class for every error raised by the file connector."""


# ---------------------------------------------------------------------------
# Configuration (plan-build time, before any file I/O)
# ---------------------------------------------------------------------------

class ConfigurationError(ConnectorError, ValueError):
    pass


class UnknownFormatError(ConfigurationError):
    def __init__(self, format_id: str, known=()) -> None:
        self.format_id = format_id
        msg = f"Unknown file format: {format_id!r}"
        if known:
            msg += f" (registered: {', '.join(sorted(known))})"
        super().__init__(msg)


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

class DiscoveryError(ConnectorError):
    pass


class NoDataError(DiscoveryError):
    pass


# ---------------------------------------------------------------------------
# Execution (per file)
# ---------------------------------------------------------------------------

class DecodeError(ConnectorError, ValueError):
    """Malformed content, localized to ``position`` when the format can tell."""

    def __init__(
        self,
        message: str,
        *,
        path: Union[str, Path, None] = None,
        position: Optional[int] = None,
    ) -> None:
        self.path = str(path) if path is not None else None
        self.position = position
        self.reason = message
        where = self.path or "<stream>"
        if position is not None:
            where = f"{where}:{position}"
        super().__init__(f"{where}: {message}")


class FileReadError(ConnectorError):
    """Attributes an I/O or decode failure to the file being read."""

    def __init__(self, path: Union[str, Path], message: str) -> None:
        self.path = str(path)
        super().__init__(f"Failed reading {self.path}: {message}")
