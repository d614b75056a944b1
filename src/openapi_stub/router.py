"""Request router: compiles path templates and dispatches requests to operations."""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass

from openapi_stub.errors import MissingSuccessResponse, RouteNotFound
from openapi_stub.spec.models import OpenApiSpec, Operation, Response

logger = logging.getLogger(__name__)

PATH_PARAMETER_PATTERN = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True, slots=True)
class CompiledPath:
    """An anchored pattern plus the declared name of each placeholder.

    Groups are named `p0`, `p1`, ... so any placeholder spelling compiles;
    `names[i]` is the declared name of group `p{i}`.
    """

    regex: re.Pattern
    names: tuple[str, ...] = ()

    def match(self, path: str) -> dict[str, str] | None:
        """Captured params by declared name, or None. A repeated name keeps its first capture."""
        m = self.regex.match(path)
        if m is None:
            return None
        params: dict[str, str] = {}
        for i, name in enumerate(self.names):
            params.setdefault(name, m.group(f"p{i}"))
        return params


@dataclass(frozen=True, slots=True)
class Route:
    method: str
    template: str
    pattern: CompiledPath
    operation: Operation


@dataclass(frozen=True, slots=True)
class RouteMatch:
    route: Route
    params: dict[str, str]

    @property
    def operation(self) -> Operation:
        return self.route.operation


def compile_path(template: str) -> CompiledPath:
    """Compile a path template like `/widgets/{id}` into an anchored pattern.

    Literal segments must match exactly. Each `{name}` placeholder captures a
    run of ASCII word characters, reported under `name`.
    """
    segments = [s for s in template.split("/") if s]
    if not segments:
        return CompiledPath(re.compile(r"\A/\Z"))

    names: list[str] = []
    pattern = r"\A"
    for segment in segments:
        pattern += "/" + _compile_segment(segment, names)
    return CompiledPath(re.compile(pattern + r"\Z", re.ASCII), tuple(names))


def _compile_segment(segment: str, names: list[str]) -> str:
    parts = []
    pos = 0
    for m in PATH_PARAMETER_PATTERN.finditer(segment):
        parts.append(re.escape(segment[pos:m.start()]))
        parts.append(rf"(?P<p{len(names)}>\w+)")
        names.append(m.group(1))
        pos = m.end()
    parts.append(re.escape(segment[pos:]))
    return "".join(parts)


class Router:
    """Routes per uppercase verb, scanned in table order; first match wins."""

    def __init__(self) -> None:
        self._routes: dict[str, list[Route]] = {}

    @classmethod
    def build(cls, spec: OpenApiSpec) -> "Router":
        """Compile every (template, verb, operation) in the spec."""
        router = cls()
        num_paths = 0
        num_endpoints = 0

        for template, verbs in spec.paths.items():
            num_paths += 1
            pattern = compile_path(template)
            logger.debug("Compiled path: %s", pattern.regex.pattern)

            for verb, operation in verbs.items():
                num_endpoints += 1
                router.add(verb, template, operation, pattern=pattern)

        logger.info("Routing to %d path(s) and %d endpoint(s)", num_paths, num_endpoints)
        return router

    def add(self, method: str, template: str, operation: Operation, pattern: CompiledPath | None = None) -> Route:
        # the HTTP layer hands us uppercase verbs, so key the table the same way
        method_value = method.strip().upper()
        route = Route(
            method=method_value,
            template=template,
            pattern=pattern if pattern is not None else compile_path(template),
            operation=operation,
        )
        self._routes.setdefault(method_value, []).append(route)
        return route

    def dispatch(self, method: str, path: str) -> RouteMatch:
        """Return the first route matching (method, path) with its captured params.

        Raises RouteNotFound when nothing matches.
        """
        method_value = method.strip().upper()
        for route in self._routes.get(method_value, []):
            params = route.pattern.match(path)
            if params is not None:
                return RouteMatch(route=route, params=params)
        raise RouteNotFound(method_value, path)

    def routes(self) -> Iterator[Route]:
        for verb_routes in self._routes.values():
            yield from verb_routes


def success_response(operation: Operation) -> Response:
    """Select the 200 response of a dispatched operation."""
    try:
        return operation.responses["200"]
    except KeyError:
        raise MissingSuccessResponse(operation.operation_id) from None
