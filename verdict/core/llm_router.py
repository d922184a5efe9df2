"""LiteLLM Router for the probabilistic judge.

The router owns retries, cooldowns and the fallback from the fast model to
the smart model, so the judge itself can treat any exception as "judge
unavailable" and keep the deterministic verdict.

Supports:
- OpenRouter (default): Uses OPENROUTER_API_KEY
- Azure OpenAI: Uses AZURE_API_KEY, AZURE_API_BASE, AZURE_API_VERSION
"""

import os

from litellm import Router

from verdict.core.config import (
    LLM_PROVIDER,
    API_KEY_ENV_VAR,
    SMART_MODEL,
    FAST_MODEL,
)


def _model_entry(model: str, **params) -> dict:
    return {
        "model_name": model,
        "litellm_params": {"model": model, **params},
    }


def _build_openrouter_model_list() -> list[dict]:
    api_key_ref = f"os.environ/{API_KEY_ENV_VAR}"
    return [
        _model_entry(FAST_MODEL, api_key=api_key_ref),
        _model_entry(SMART_MODEL, api_key=api_key_ref),
    ]


def _build_azure_model_list() -> list[dict]:
    """Azure deployments come from AZURE_DEPLOYMENT_* (see config.py)."""
    azure_params = {
        "api_key": os.environ.get("AZURE_API_KEY", ""),
        "api_base": os.environ.get("AZURE_API_BASE", ""),
        "api_version": os.environ.get("AZURE_API_VERSION", "2024-02-15-preview"),
    }
    return [
        _model_entry(FAST_MODEL, **azure_params),
        _model_entry(SMART_MODEL, **azure_params),
    ]


def build_router() -> Router:
    """Build the LLM Router with retry and fallback configuration.

    Provider is chosen by the LLM_PROVIDER env var.
    """
    if LLM_PROVIDER == "azure":
        model_list = _build_azure_model_list()
    else:
        model_list = _build_openrouter_model_list()

    return Router(
        model_list=model_list,
        num_retries=2,
        retry_after=4,
        cooldown_time=60,
        allowed_fails=2,
        fallbacks=[{FAST_MODEL: [SMART_MODEL]}],
    )


router = build_router()
