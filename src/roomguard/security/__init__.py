"""Request and data access heuristics that feed the security monitor."""

from roomguard.security.suspicious_activity_detector import (
    AccessRiskScorer,
    DataIntegrityDetector,
    monitor_environment_access,
)

__all__ = ["AccessRiskScorer", "DataIntegrityDetector", "monitor_environment_access"]
