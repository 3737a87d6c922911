"""Typed enrichment failures.

Every failure of a single enrichment call surfaces as an EnrichmentError
subclass; the orchestrator marks the unit failed and keeps the old artifact.
"""

from __future__ import annotations


class EnrichmentError(Exception):
    """Base class for a failed enrichment call."""


class EnrichmentTransportError(EnrichmentError):
    """The request could not be completed (network, timeout, provider error)."""


class MalformedResponseError(EnrichmentError):
    """The response was empty, not JSON, or not a JSON object."""


class MissingFieldError(EnrichmentError):
    """A required field is absent or empty in the response."""

    def __init__(self, field: str) -> None:
        super().__init__(f"response is missing required field '{field}'")
        self.field = field


class FieldConstraintError(EnrichmentError):
    """A field is present but has the wrong type, length, or item count."""
