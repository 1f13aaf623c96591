"""
Analytical modules for FairWatch.

Submodules:
- ethics: Fairness metrics, statistics and bias detection
"""
