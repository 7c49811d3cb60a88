from .formatter import format_release, format_releases
from .generator import FileReleaseSink, PersistenceSink

__all__ = ["FileReleaseSink", "PersistenceSink", "format_release", "format_releases"]
