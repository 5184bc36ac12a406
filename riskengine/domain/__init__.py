"""Framework-agnostic domain models for risk assessment."""
