"""HTTP harness: runs requests through the router and generator.

StubServer holds the immutable route table and generator built at startup.
create_app wraps it in a FastAPI app with a single catch-all route, and
serve runs that app under uvicorn on a TCP port or a unix socket.
"""

import json
import logging
import time
from http import HTTPStatus
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import Response

from openapi_stub.errors import StubError
from openapi_stub.generator.data import DataGenerator
from openapi_stub.router import Router, success_response
from openapi_stub.spec.models import Fixtures, OpenApiSpec

logger = logging.getLogger(__name__)

DEFAULT_PORT = 6065

STUB_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS", "TRACE"]


class StubServer:
    """Answers (method, path) with a status code and an encoded JSON body."""

    def __init__(self, spec: OpenApiSpec, fixtures: Fixtures, router: Router | None = None):
        self.spec = spec
        self.fixtures = fixtures
        self.router = router or Router.build(spec)
        self.generator = DataGenerator(spec.definitions, fixtures)

    def handle_request(self, method: str, path: str) -> tuple[int, bytes]:
        logger.info("Request: %s %s", method, path)
        start = time.monotonic()

        try:
            match = self.router.dispatch(method, path)
            response = success_response(match.operation)
            logger.debug("Response schema: %r", response.schema_)
            data = self.generator.generate(response.schema_, match.params)
        except StubError as e:
            if e.status_code >= 500:
                logger.error("Couldn't generate response: %s", e)
            error = {"error": {"message": str(e), "type": e.error_type}}
            return self._write(start, e.status_code, error)

        return self._write(start, HTTPStatus.OK, data)

    def _write(self, start: float, status: int, data: Any) -> tuple[int, bytes]:
        try:
            body = json.dumps(data).encode("utf-8")
        except (TypeError, ValueError) as e:
            logger.error("Error serializing response: %s", e)
            status, body = HTTPStatus.INTERNAL_SERVER_ERROR, b""

        elapsed_ms = (time.monotonic() - start) * 1000
        logger.info("Response: elapsed=%.2fms status=%d", elapsed_ms, status)
        logger.debug("Response body: %s", body.decode("utf-8"))
        return int(status), body


def create_app(stub: StubServer) -> FastAPI:
    """Build a FastAPI app that sends every request to `stub`."""
    # docs routes would shadow stubbed paths like /docs
    app = FastAPI(title="OpenAPI Stub", docs_url=None, redoc_url=None, openapi_url=None)

    @app.api_route("/{path:path}", methods=STUB_METHODS, include_in_schema=False)
    async def handle(request: Request) -> Response:
        status, body = stub.handle_request(request.method, request.url.path)
        return Response(content=body, status_code=status, media_type="application/json")

    return app


def serve(
    app: FastAPI,
    *,
    host: str = "0.0.0.0",
    port: int | None = None,
    unix: str | None = None,
    log_level: str = "info",
) -> None:
    """Run `app` on a unix socket when `unix` is set, otherwise on a TCP port."""
    if port is not None and unix:
        raise ValueError("Specify only one of port or unix")

    if unix:
        logger.info("Listening on unix socket %s", unix)
        uvicorn.run(app, uds=unix, log_level=log_level)
    else:
        port = port or DEFAULT_PORT
        logger.info("Listening on port %d", port)
        uvicorn.run(app, host=host, port=port, log_level=log_level)
