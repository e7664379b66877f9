"""GraphQL parsing and validation."""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from graphql import (
    GraphQLError,
    GraphQLSchema,
    build_schema as build_sdl_schema,
    parse,
    validate,
)

from .endpoints import Surface
from .schema_loader import SchemaManager

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Outcome of validating a query against a schema."""

    valid: bool
    errors: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict:
        if self.valid:
            return {"valid": True}
        return asdict(self)


def build_schema(schema_sdl: str) -> GraphQLSchema:
    """
    Build GraphQL schema from SDL text.

    Args:
        schema_sdl: Printed schema, as stored in the schema files

    Returns:
        GraphQLSchema object
    """
    return build_sdl_schema(schema_sdl)


def parse_query(source: str):
    """
    Parse GraphQL query string into AST.

    Args:
        source: GraphQL query string

    Returns:
        DocumentNode AST

    Raises:
        GraphQLError: If query is syntactically invalid
    """
    return parse(source)


def validate_query(doc, schema: GraphQLSchema) -> list[GraphQLError]:
    """
    Validate query against schema.

    Args:
        doc: Parsed query document
        schema: GraphQL schema

    Returns:
        List of validation errors (empty if valid)
    """
    return validate(schema, doc)


def format_error(error: GraphQLError) -> dict[str, Any]:
    """Convert a GraphQL error to ``{message, locations}``."""
    locations: Optional[list[dict[str, int]]] = None
    if error.locations:
        locations = [{"line": loc.line, "column": loc.column} for loc in error.locations]
    return {"message": error.message, "locations": locations}


def check_query(query: str, schema_sdl: str) -> ValidationResult:
    """
    Validate ``query`` against the schema in ``schema_sdl``.

    Malformed SDL or query syntax becomes a single synthesized error.
    """
    try:
        schema = build_schema(schema_sdl)
        doc = parse_query(query)
        errors = validate_query(doc, schema)
    except Exception as e:
        # includes RecursionError from deeply nested documents
        return ValidationResult(
            valid=False,
            errors=[{"message": f"Internal error during query validation: {e}", "locations": None}],
        )

    if errors:
        return ValidationResult(valid=False, errors=[format_error(e) for e in errors])
    return ValidationResult(valid=True)


class QueryValidator:
    """Pre-flight gate checking queries against the surface schema."""

    def __init__(self, schemas: SchemaManager):
        self.schemas = schemas

    def validate(self, query: str, surface: Surface) -> ValidationResult:
        """
        Validate ``query`` for ``surface``.

        Validation is skipped (valid) when no schema exists for the surface,
        which is the case for a disabled or unreachable Admin API.
        """
        try:
            schema_sdl = self.schemas.get_schema(surface)
        except Exception as e:
            logger.error("Error loading %s schema for validation: %s", surface, e)
            return ValidationResult(
                valid=False,
                errors=[{"message": f"Internal error during query validation: {e}", "locations": None}],
            )

        if not schema_sdl:
            logger.info("Skipping validation as %s schema is not available", surface)
            return ValidationResult(valid=True)

        result = check_query(query, schema_sdl)
        if result.valid:
            logger.debug("GraphQL validation successful for %s query", surface)
        else:
            logger.warning("GraphQL validation failed for %s query: %s", surface, result.errors)
        return result
