"""
API Context Factory for CLI.

Resolves configuration and credentials into the explicit ApiContext a
ModelAPI is built from. Token precedence: HASTILY_API_TOKEN, then saved
login credentials when a login endpoint is configured.
"""

from hastily.api.orchestrator import ApiContext, ModelAPI
from hastily.core.config import get_app_config, get_settings
from hastily.core.credentials import load_credentials
from hastily.core.exceptions import ValidationError
from hastily.core.logging import get_logger, log_with_source

logger = get_logger(__name__)


def resolve_token() -> str:
    """
    Bearer token for backend requests.

    Raises:
        ValidationError: If a login endpoint is configured but no usable
            credentials were saved
    """
    settings = get_settings()
    if settings.api_token:
        return settings.api_token

    api = get_app_config().application.api
    if not api.login:
        return ""

    try:
        return load_credentials().access_token
    except FileNotFoundError as e:
        raise ValidationError("Not logged in. Run 'auth login' first.") from e


def get_api_context(model: str) -> ApiContext:
    """Build the ApiContext for a backend model from settings and credentials."""
    app_config = get_app_config()
    api = app_config.application.api
    concurrency = app_config.concurrency

    context = ApiContext(
        endpoint=api.endpoint,
        model=model,
        token=resolve_token(),
        concurrency=concurrency.fanout.max_concurrency,
        workers=concurrency.thread_pool.max_workers,
        timeout=concurrency.fanout.item_timeout,
        request_timeout=api.timeout,
        retry_attempts=concurrency.retry.attempts,
        retry_min_wait=concurrency.retry.min_wait,
        retry_max_wait=concurrency.retry.max_wait,
    )
    log_with_source(logger, "cli", "debug", "API context resolved", model=model, endpoint=api.endpoint)
    return context


def get_model_api(model: str) -> ModelAPI:
    """Create a ModelAPI for a backend model."""
    return ModelAPI(get_api_context(model))
