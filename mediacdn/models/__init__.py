from .metrics import AvailabilitySnapshot, FailoverMetrics, HealthMonitorMetrics
from .responsive import ResponsiveImageAttributes
from .results import ProbeResult, SignedUrlResult
from .transform import CropMode, Focus, ImageFormat, TransformOptions

__all__ = [
    "AvailabilitySnapshot",
    "FailoverMetrics",
    "HealthMonitorMetrics",
    "ResponsiveImageAttributes",
    "ProbeResult",
    "SignedUrlResult",
    "CropMode",
    "Focus",
    "ImageFormat",
    "TransformOptions",
]
