"""Medical risk scoring and emergency escalation engine.

This package contains the scoring rules, domain models and decision logic,
isolated from transport and persistence so every step is a pure function.
"""
