"""Doctor Match Engine - fuzzy doctor search and patient-to-doctor matching."""

from doctor_match.config import Settings
from doctor_match.service_layer.engine import MatchingEngine, create_engine


__all__ = [
    "MatchingEngine",
    "Settings",
    "create_engine",
]

__version__ = "0.1.0"
