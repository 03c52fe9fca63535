"""Starlette middleware running the identity request handlers.

Usage:
    app = Starlette(
        routes=routes,
        middleware=[
            Middleware(
                AuthenticationMiddleware,
                handlers=[create_token_validator(cache, env)],
            )
        ],
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ..errors import AccessDeniedError
from ..logging_config import get_logger

if TYPE_CHECKING:
    from starlette.middleware.base import RequestResponseEndpoint
    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.types import ASGIApp

    from .handlers import Handler

logger = get_logger("middleware.asgi")


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Run handlers in order before the endpoint; answer 401 when one denies."""

    def __init__(
        self,
        app: "ASGIApp",
        handlers: Sequence["Handler"],
        paths: Sequence[str] | None = None,
    ) -> None:
        """Initialize the middleware.

        Args:
            app: Wrapped ASGI application
            handlers: Handlers to run, in order
            paths: Path prefixes to protect (default: every path)
        """
        super().__init__(app)
        self.handlers = list(handlers)
        self.paths = tuple(paths) if paths else None

    async def dispatch(
        self, request: "Request", call_next: "RequestResponseEndpoint"
    ) -> "Response":
        if self.paths is not None and not request.url.path.startswith(self.paths):
            return await call_next(request)

        for handler in self.handlers:
            try:
                await handler(request)
            except AccessDeniedError as e:
                logger.debug("Request to %s denied by %s", request.url.path, handler.__name__)
                return JSONResponse(
                    {"error": "access_denied", "error_description": str(e)},
                    status_code=401,
                )

        return await call_next(request)
