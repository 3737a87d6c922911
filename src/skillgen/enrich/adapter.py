"""Enrichment Adapter — fill curated gaps with one generative call per unit.

The adapter is only asked for fields the curated descriptor leaves empty
(see ``schema.missing_fields``). It makes exactly one outbound request per
``enrich()`` call with no internal retry; request and response failures are
raised as ``EnrichmentError`` for the orchestrator to record, other exceptions
propagate unchanged.
"""

from __future__ import annotations

from typing import Any

from skillgen.config import EnrichmentCfg
from skillgen.enrich.errors import EnrichmentTransportError
from skillgen.enrich.llm_client import TRANSPORT_ERRORS, complete_json, validate_api_key
from skillgen.enrich.prompts import build_request
from skillgen.enrich.schema import missing_fields, parse_response, validate_fields
from skillgen.models import SourceUnit


class EnrichmentAdapter:
    """Generate missing descriptive fields through LiteLLM.

    Args:
        model:      LiteLLM model string ('provider/model').
        timeout:    Per-request timeout in seconds.
        max_tokens: Maximum output tokens.
        seed:       Fixed sampling seed.
    """

    def __init__(
        self,
        model: str,
        timeout: float,
        max_tokens: int = 2048,
        seed: int = 42,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be > 0")
        self.model = model
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._seed = seed

    @classmethod
    def from_config(cls, cfg: EnrichmentCfg) -> EnrichmentAdapter:
        """Build an adapter after checking the provider credential.

        Raises:
            EnvironmentError: If the API key for ``cfg.model`` is not set.
        """
        validate_api_key(cfg.model)
        return cls(cfg.model, cfg.timeout, max_tokens=cfg.max_tokens, seed=cfg.seed)

    def enrich(self, unit: SourceUnit, wanted: list[str] | None = None) -> dict[str, Any]:
        """Return validated generated values for the *wanted* fields of *unit*.

        Args:
            unit: The stale unit to enrich; sibling context (skill names, hook
                events, philosophy sections) is read from its fields.
            wanted: Fields to generate. Defaults to the unit's missing fields.

        Raises:
            EnrichmentError: On transport failure, malformed JSON, a missing
                field, or a field outside its length constraints.
        """
        fields = wanted if wanted is not None else missing_fields(unit)
        if not fields:
            return {}

        request = build_request(unit)
        try:
            text = complete_json(
                self.model,
                request.prompt,
                timeout=self._timeout,
                max_tokens=self._max_tokens,
                seed=self._seed,
            )
        except TRANSPORT_ERRORS as exc:
            raise EnrichmentTransportError(
                f"{type(exc).__name__} calling {self.model}: {exc}"
            ) from exc

        return validate_fields(unit, parse_response(text), fields)
