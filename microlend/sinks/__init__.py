"""Output sinks for exporting loans and schedules."""

from microlend.sinks.console import ConsoleSink
from microlend.sinks.json_file import JsonFileSink

__all__ = ["ConsoleSink", "JsonFileSink"]
