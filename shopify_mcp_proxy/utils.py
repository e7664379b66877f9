"""Utility functions shared by the proxy components."""

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

from graphql import get_introspection_query
from rich.console import Console
from rich.logging import RichHandler

# Standard GraphQL introspection query, with descriptions
INTROSPECTION_QUERY = get_introspection_query(descriptions=True)

OPERATION_NAME_RE = re.compile(r"(?:query|mutation)\s*(\w+)")
UNKNOWN_OPERATION = "UnknownOperation"


# File system utilities
def ensure_dir(path: str) -> None:
    """Ensure directory exists, creating it if necessary."""
    Path(path).mkdir(parents=True, exist_ok=True)


def exists(path: str) -> bool:
    """Check if file exists."""
    return Path(path).exists()


def dirname(path: str) -> str:
    """Get directory name from path."""
    return str(Path(path).parent)


def join(*parts: str) -> str:
    """Join path components."""
    return str(Path(*parts))


def expand_path(path: str) -> str:
    """Expand ~ in path."""
    return str(Path(path).expanduser())


# File I/O
def read_text(path: str) -> str:
    """Read text file."""
    return Path(path).read_text(encoding="utf-8")


def write_text(path: str, text: str) -> None:
    """Write text file, replacing any previous content."""
    Path(path).write_text(text, encoding="utf-8")


def to_json(data: Any) -> str:
    """Convert data to JSON string."""
    return json.dumps(data, indent=2)


# GraphQL helpers
def operation_name(query: str) -> str:
    """
    Best-effort operation name for audit logging.

    Matches the first ``query``/``mutation`` keyword and the identifier after it.
    """
    match = OPERATION_NAME_RE.search(query or "")
    return match.group(1) if match else UNKNOWN_OPERATION


def error_payload(message: str) -> dict:
    """Build a GraphQL-style error body."""
    return {"errors": [{"message": message}]}


def first_error_message(payload: Any, default: str) -> str:
    """Return the first ``errors[].message`` in a GraphQL body, or ``default``."""
    if isinstance(payload, dict):
        errors = payload.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            message = errors[0].get("message")
            if message:
                return str(message)
    return default


# HTTP response helpers
def json_body(response) -> Optional[Any]:
    """
    Parse JSON from an HTTP response.

    Args:
        response: requests.Response object

    Returns:
        Parsed JSON, or None if the body is not valid JSON
    """
    try:
        return response.json()
    except ValueError:
        return None


def body_preview(response, limit: int = 300) -> str:
    """First ``limit`` characters of a response body, for log lines."""
    text = response.text or ""
    if len(text) > limit:
        return text[:limit] + "..."
    return text


# Logging
def configure_logging(level: str = "INFO") -> None:
    """
    Send all log records to stderr through rich.

    stdout stays free for the stdio protocol.
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)],
        force=True,
    )
