"""Settlement monitoring and redemption."""

from crossarb.resolution.monitor import ResolutionMonitor

__all__ = ["ResolutionMonitor"]
