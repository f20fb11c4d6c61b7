"""Cross-venue price discrepancy detection."""

from arbopt.detection.config import DEFAULT_DETECTOR_CONFIG, DetectorConfig
from arbopt.detection.detector import DetectorStats, OpportunityDetector

__all__ = [
    "DEFAULT_DETECTOR_CONFIG",
    "DetectorConfig",
    "DetectorStats",
    "OpportunityDetector",
]
