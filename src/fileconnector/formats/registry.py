"""
Format registry: format id -> plugin factory.

Populated once (built-ins plus installed plugins advertised under the
``fileconnector.formats`` entry-point group), then frozen. Lookups on a
frozen registry only read a dict and need no lock.
"""

from __future__ import annotations

import logging
import threading
from importlib.metadata import entry_points
from typing import Callable, Dict, List, Optional

from fileconnector.errors import ConfigurationError, UnknownFormatError
from fileconnector.formats.base import FormatPlugin

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "fileconnector.formats"

PluginFactory = Callable[[], FormatPlugin]


class FormatRegistry:
    def __init__(self, factories: Optional[Dict[str, PluginFactory]] = None) -> None:
        self._factories: Dict[str, PluginFactory] = {}
        self._frozen = False
        self._lock = threading.Lock()
        for format_id, factory in (factories or {}).items():
            self.register(format_id, factory)

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------
    def register(self, format_id: str, factory: PluginFactory) -> None:
        if not format_id or not isinstance(format_id, str):
            raise ConfigurationError(f"Invalid format id: {format_id!r}")
        with self._lock:
            if self._frozen:
                raise RuntimeError(f"Format registry is frozen; cannot register {format_id!r}")
            if format_id in self._factories:
                raise ConfigurationError(f"Format {format_id!r} is already registered")
            self._factories[format_id] = factory
        logger.debug("Registered file format %r", format_id)

    def freeze(self) -> "FormatRegistry":
        with self._lock:
            self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def lookup(self, format_id: str) -> PluginFactory:
        try:
            return self._factories[format_id]
        except KeyError:
            raise UnknownFormatError(format_id, self._factories.keys()) from None

    def create(self, format_id: str) -> FormatPlugin:
        plugin = self.lookup(format_id)()
        if plugin.format_id != format_id:
            raise ConfigurationError(
                f"Plugin registered as {format_id!r} reports format_id {plugin.format_id!r}"
            )
        return plugin

    def formats(self) -> List[str]:
        return sorted(self._factories)

    def __contains__(self, format_id: object) -> bool:
        return format_id in self._factories


# ---------------------------------------------------------------------------
# Default registry
# ---------------------------------------------------------------------------
def builtin_factories() -> Dict[str, PluginFactory]:
    from fileconnector.formats.delimited import CsvPlugin
    from fileconnector.formats.jsonl import JsonLinesPlugin
    from fileconnector.formats.parquet import ParquetPlugin
    from fileconnector.formats.text import BytesPlugin, LinesPlugin, TextPlugin

    return {
        CsvPlugin.format_id: CsvPlugin,
        JsonLinesPlugin.format_id: JsonLinesPlugin,
        LinesPlugin.format_id: LinesPlugin,
        TextPlugin.format_id: TextPlugin,
        BytesPlugin.format_id: BytesPlugin,
        ParquetPlugin.format_id: ParquetPlugin,
    }


def load_plugins(registry: FormatRegistry) -> None:
    """Register third-party plugins installed under ENTRY_POINT_GROUP."""
    for ep in entry_points(group=ENTRY_POINT_GROUP):
        if ep.name in registry:
            logger.warning("Ignoring plugin %s: format %r already registered", ep.value, ep.name)
            continue
        registry.register(ep.name, ep.load())


_DEFAULT: Optional[FormatRegistry] = None
_DEFAULT_LOCK = threading.Lock()


def default_registry() -> FormatRegistry:
    global _DEFAULT
    if _DEFAULT is None:
        with _DEFAULT_LOCK:
            if _DEFAULT is None:
                reg = FormatRegistry(builtin_factories())
                load_plugins(reg)
                _DEFAULT = reg.freeze()
    return _DEFAULT
