"""
Reference execution engine.

Exports the public API:
- discover_files, assign_files
- LocalEngine, map_stage, filter_stage, DROP
"""
from .discovery import assign_files, discover_files, split_among_processors
from .local import DROP, LocalEngine, filter_stage, map_stage
