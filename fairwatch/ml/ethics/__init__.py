"""
Fairness measurement and bias detection.

Components:
- statistics: Proportions, intervals, contingency tests, effect sizes
- FairnessCalculator: Computes the five fairness metric families
- BiasDetector: Turns metrics into violations and a compliance verdict
"""

from .fairness_metrics import FairnessCalculator

from .bias_detector import (
    BiasDetector,
    DetectionResult,
    QuickCheckResult,
    TermFlag,
    classify_severity,
    determine_compliance,
    order_violations,
)

__all__ = [
    # Fairness Metrics
    "FairnessCalculator",
    # Detector
    "BiasDetector",
    "DetectionResult",
    "QuickCheckResult",
    "TermFlag",
    "classify_severity",
    "determine_compliance",
    "order_violations",
]
