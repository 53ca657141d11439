"""Cross-cutting utilities for the catalog sync engine.

Modules:
    backoff: Polling delay policies and the Clock abstraction.
    logging: structlog configuration.
"""
