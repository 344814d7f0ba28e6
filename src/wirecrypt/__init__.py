"""Per-exchange negotiation and enforcement of JSON payload encryption."""

__version__ = "0.1.0"
