"""
Core business logic for FairWatch.

Submodules:
- monitoring: Bias monitoring service, alerts, audit trail and scheduling
"""
