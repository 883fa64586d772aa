"""Process host adapters."""

from .host import BashProcessHost, ProcessHost, ProcessResult

__all__ = ["BashProcessHost", "ProcessHost", "ProcessResult"]
