"""AWS Lambda entry point for the HTTP bridge.

Point the function's handler at ``server.lambda_handler.handler`` and set
``HTTP_BRIDGE_HANDLER`` to the framework request handler's import path
(``package.module:attribute``). ``HTTP_BRIDGE_LOAD_CONTEXT`` optionally names
a load-context function the same way.
"""

import logging
import os
from typing import Any, Dict, Optional

from core.loader import HANDLER_ENV_VAR, LOAD_CONTEXT_ENV_VAR, resolve_import_path
from core.logging_utils import configure_json_logging
from core.validators import (
    AdapterConfig,
    ConfigurationError,
    get_logging_config,
    load_config,
)
from server.adapters.aws_lambda import GatewayAdapter, create_request_handler

# Configure JSON logging before other loggers are used; fall back to INFO
# when the configuration itself is broken so the error still gets logged.
try:
    log_level = get_logging_config(load_config()).get("level", "INFO")
except ConfigurationError:
    log_level = "INFO"

configure_json_logging(level=log_level, pretty=False)  # Compact JSON for CloudWatch
logger = logging.getLogger(__name__)

# Global variables for Lambda container reuse
_adapter: Optional[GatewayAdapter] = None
_config: Optional[AdapterConfig] = None


def _load_config() -> AdapterConfig:
    global _config

    if _config is None:
        _config = load_config()
    return _config


def get_adapter() -> GatewayAdapter:
    """Get or create the gateway adapter instance.

    Uses lazy initialization to support Lambda warm starts.

    Raises:
        ConfigurationError: If the handler import path is missing or invalid
    """
    global _adapter

    if _adapter is not None:
        return _adapter

    handler_path = os.environ.get(HANDLER_ENV_VAR)
    if not handler_path:
        raise ConfigurationError(
            f"{HANDLER_ENV_VAR} is not set. Point it at the framework request "
            "handler, e.g. 'app.server:handle_request'."
        )

    handle_request = resolve_import_path(handler_path)
    if not callable(handle_request):
        raise ConfigurationError(f"'{handler_path}' is not callable")

    get_load_context = None
    load_context_path = os.environ.get(LOAD_CONTEXT_ENV_VAR)
    if load_context_path:
        get_load_context = resolve_import_path(load_context_path)

    _adapter = create_request_handler(
        handle_request, get_load_context=get_load_context, config=_load_config()
    )
    logger.info(
        "Created new GatewayAdapter instance",
        extra={"handler": handler_path, "load_context": load_context_path},
    )
    return _adapter


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """AWS Lambda handler function.

    Args:
        event: HTTP API v2 event
        context: Lambda context

    Returns:
        Gateway reply dictionary
    """
    return get_adapter()(event, context)
