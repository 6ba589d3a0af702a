"""
Adapter configuration. Env values are defaults only; keyword arguments to OAuthServer win.
Everything except the adapter flags is handed to the protocol engine untouched.
"""
import os
from dataclasses import dataclass, field
from typing import Any

from fastapi_oauth_server.errors import InvalidArgumentError

_TRUTHY = ("1", "true", "yes", "on")

# If true, protocol errors are re-raised to the app's exception handlers instead of rendered here
USE_ERROR_HANDLER = os.environ.get("OAUTH_USE_ERROR_HANDLER", "false").strip().lower() in _TRUTHY

# If true, authorize()/token() call the next handler instead of rendering the engine response
CONTINUE_MIDDLEWARE = os.environ.get("OAUTH_CONTINUE_MIDDLEWARE", "false").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class AdapterOptions:
    model: Any
    use_error_handler: bool = USE_ERROR_HANDLER
    continue_middleware: bool = CONTINUE_MIDDLEWARE
    engine_options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_kwargs(cls, options: dict[str, Any]) -> "AdapterOptions":
        """
        Validate constructor keywords and split adapter flags from engine options.
        Raises InvalidArgumentError when model is missing.
        """
        if options.get("model") is None:
            raise InvalidArgumentError("Missing parameter: `model`")
        engine_options = dict(options)
        model = engine_options.pop("model")
        use_error_handler = engine_options.pop("use_error_handler", USE_ERROR_HANDLER)
        continue_middleware = engine_options.pop("continue_middleware", CONTINUE_MIDDLEWARE)
        return cls(
            model=model,
            use_error_handler=bool(use_error_handler),
            continue_middleware=bool(continue_middleware),
            engine_options=engine_options,
        )
