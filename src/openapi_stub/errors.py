"""Error taxonomy for the stub server.

Per-request errors carry the HTTP status the handler answers with.
"""


class StubError(Exception):
    """Base class for errors raised while serving a request."""

    status_code = 500
    error_type = "internal_error"


class RouteNotFound(StubError):
    status_code = 404
    error_type = "route_not_found"

    def __init__(self, method: str, path: str):
        self.method = method
        self.path = path
        super().__init__(f"No route for {method} {path}")


class MissingSuccessResponse(StubError):
    error_type = "missing_success_response"

    def __init__(self, operation_id: str = ""):
        self.operation_id = operation_id
        label = operation_id or "operation"
        super().__init__(f"Couldn't find 200 response in spec for {label}")


class GenerationError(StubError):
    error_type = "generation_error"

    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"Couldn't resolve reference: {ref}")


class DocumentLoadError(Exception):
    """A specification or fixtures document could not be loaded. Startup only."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Error loading {path}: {reason}")
