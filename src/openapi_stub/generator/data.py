"""Schema-driven response generator.

Turns a response schema into a JSON value, substituting fixtures for nodes
tagged with `x-resourceId`. References are resolved through the definitions
table; a reference already being expanded on the current descent path ends
in an empty value of its kind instead of recursing forever.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from openapi_stub.errors import GenerationError
from openapi_stub.spec.models import Fixtures, JsonSchema

logger = logging.getLogger(__name__)

IDENTIFIER_FIELD = "id"

SCALAR_VALUES: dict[str, Any] = {
    "string": "",
    "number": 0,
    "integer": 0,
    "boolean": False,
    "null": None,
}


@dataclass
class GenerationContext:
    """Per-request state threaded through the recursion."""

    params: dict[str, str] = field(default_factory=dict)
    visited: set[str] = field(default_factory=set)


class DataGenerator:
    """Generates JSON values from schemas, backed by fixtures."""

    def __init__(self, definitions: dict[str, JsonSchema], fixtures: Fixtures):
        self.definitions = definitions
        self.fixtures = fixtures

    def generate(self, schema: JsonSchema | None, params: dict[str, str] | None = None) -> Any:
        """Generate a value for `schema`.

        `params` are the path parameters captured by the matched route; they
        pick among multiple fixture instances of one resource.
        Raises GenerationError when a reference doesn't resolve.
        """
        if schema is None:
            return None
        return self._generate(schema, GenerationContext(params=dict(params or {})))

    def _generate(self, schema: JsonSchema, ctx: GenerationContext) -> Any:
        if schema.ref:
            return self._generate_ref(schema, ctx)

        if schema.resource_id:
            found, value = self._lookup_fixture(schema.resource_id, ctx.params)
            if found:
                return value
            logger.warning("No fixture for resource %r, generating from schema", schema.resource_id)

        if schema.enum:
            return schema.enum[0]

        kind = schema.kind
        if kind == "object":
            return {name: self._generate(prop, ctx) for name, prop in schema.properties.items()}
        if kind == "array":
            if schema.items is None:
                return []
            return [self._generate(schema.items, ctx)]
        return SCALAR_VALUES.get(kind)

    def _generate_ref(self, schema: JsonSchema, ctx: GenerationContext) -> Any:
        name = schema.ref_name
        resolved = self.definitions.get(name)
        if resolved is None:
            raise GenerationError(schema.ref)

        if name in ctx.visited:
            return self._terminal_value(resolved)

        ctx.visited.add(name)
        try:
            return self._generate(resolved, ctx)
        finally:
            ctx.visited.discard(name)

    def _terminal_value(self, schema: JsonSchema) -> Any:
        # a definition that only aliases another takes the aliased kind
        seen: set[str] = set()
        while schema.ref and schema.ref_name not in seen:
            seen.add(schema.ref_name)
            resolved = self.definitions.get(schema.ref_name)
            if resolved is None:
                raise GenerationError(schema.ref)
            schema = resolved

        kind = schema.kind
        if kind == "object":
            return {}
        if kind == "array":
            return []
        return SCALAR_VALUES.get(kind)

    def _lookup_fixture(self, resource_id: str, params: dict[str, str]) -> tuple[bool, Any]:
        instance = self._matching_instance(resource_id, params)
        if instance is not None:
            return True, copy.deepcopy(instance)

        if resource_id in self.fixtures.resources:
            return True, copy.deepcopy(self.fixtures.resources[resource_id])

        instances = self.fixtures.instances.get(resource_id)
        if instances:
            return True, copy.deepcopy(instances[0])
        return False, None

    def _matching_instance(self, resource_id: str, params: dict[str, str]) -> dict | None:
        wanted = params.get(IDENTIFIER_FIELD)
        if wanted is None:
            return None
        for instance in self.fixtures.instances.get(resource_id, []):
            if str(instance.get(IDENTIFIER_FIELD)) == wanted:
                return instance
        return None
