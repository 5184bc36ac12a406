"""Input-side adapters that feed the risk engine."""
