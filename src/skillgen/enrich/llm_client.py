"""LiteLLM client wrapper for enrichment calls.

Every enrichment request routes through this module. One call per request:
retries are disabled (``num_retries=0``) and an explicit timeout is always
passed, so a slow provider cannot stall a run past the configured bound.
API key presence is validated before any unit is processed.
"""

from __future__ import annotations

import os

import litellm

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "deepseek": "DEEPSEEK_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


# Failures of the request itself. Programming errors are not listed and
# propagate unchanged.
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    litellm.exceptions.APIError,
    litellm.exceptions.APIConnectionError,
    litellm.exceptions.Timeout,
    litellm.exceptions.AuthenticationError,
    litellm.exceptions.PermissionDeniedError,
    litellm.exceptions.BadRequestError,
    litellm.exceptions.NotFoundError,
    litellm.exceptions.RateLimitError,
    litellm.exceptions.ServiceUnavailableError,
    litellm.exceptions.InternalServerError,
    litellm.exceptions.UnprocessableEntityError,
    litellm.exceptions.APIResponseValidationError,
    OSError,  # socket-level timeouts and resets
    IndexError,  # response without choices
    AttributeError,  # choice without a message
)


def provider_of(model: str) -> str:
    """Return the provider prefix of a 'provider/model' string (default 'openai')."""
    return model.split("/")[0].lower() if "/" in model else "openai"


def api_key_env(model: str) -> str | None:
    """Env var holding the API key for *model*'s provider, or None if none is needed."""
    provider = provider_of(model)
    if provider in _PROVIDER_ENV:
        return _PROVIDER_ENV[provider]
    return f"{provider.upper()}_API_KEY"


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    env_var = api_key_env(model)
    if env_var is None:
        return

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider_of(model)}'. "
            f"Set the {env_var} environment variable."
        )


def complete_json(
    model: str,
    prompt: str,
    *,
    timeout: float,
    max_tokens: int = 2048,
    seed: int = 42,
) -> str:
    """Request a JSON object completion for a single user *prompt*.

    Decoding is pinned (temperature 0, fixed seed) so unchanged input yields
    textually stable output.

    Returns:
        The raw text content of the first choice ("" if the provider sent none).

    Raises:
        litellm.exceptions.APIError, litellm.exceptions.Timeout: On transport
            or provider failure. No retry is attempted.
    """
    response = litellm.completion(
        model=model,
        messages=[{"role": "user", "content": prompt}],
        response_format={"type": "json_object"},
        max_tokens=max_tokens,
        temperature=0.0,
        seed=seed,
        timeout=timeout,
        num_retries=0,
    )
    return response.choices[0].message.content or ""
