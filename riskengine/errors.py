"""
Error taxonomy for the risk engine.

Only two conditions are modelled as exceptions:
- InvalidInputError: one domain cannot be scored (recoverable, per domain)
- ConfigurationError: scoring tables are missing or invalid (fatal at startup)
"""


class RiskEngineError(Exception):
    """Base class for all risk engine errors."""


class InvalidInputError(RiskEngineError):
    """A domain scorer's required fields are missing or malformed."""

    def __init__(self, domain: str, missing_fields: list[str] | None = None, detail: str = "") -> None:
        self.domain = domain
        self.missing_fields = list(missing_fields or [])
        self.detail = detail
        message = f"Insufficient data for {domain} domain"
        if self.missing_fields:
            message += f": missing {', '.join(self.missing_fields)}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class ConfigurationError(RiskEngineError):
    """Scoring, synergy or threshold tables failed to load or validate.

    The service must refuse to start rather than run on defaults.
    """
