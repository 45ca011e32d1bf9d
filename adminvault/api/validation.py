"""
Input validation glue - pydantic errors to VALIDATION domain errors.

Request bodies are declared as pydantic models; FastAPI validates them
before a route runs. Whatever the entry point, every violated field is
reported, grouped by field path:

    [
        {"field": "username", "errors": ["String should have at least 1 character"]},
        {"field": "profile", "errors": [], "children": [
            {"field": "email", "errors": ["value is not a valid email address"]},
        ]},
    ]
"""

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from adminvault.domain.errors import DomainError

ModelT = TypeVar("ModelT", bound=BaseModel)

# Leading loc segment FastAPI adds to say where the value came from
_SOURCES = {"body", "query", "path", "header", "cookie"}


def format_validation_errors(errors: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """
    Group pydantic error entries into a field-error tree.

    Args:
        errors: Entries as returned by ``ValidationError.errors()`` or
            ``RequestValidationError.errors()``

    Returns:
        One group per top-level field, nested groups under ``children``
    """
    roots: dict[str, dict[str, Any]] = {}

    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if len(loc) > 1 and loc[0] in _SOURCES:
            loc = loc[1:]
        if not loc:
            loc = ["body"]

        nodes = roots
        node: dict[str, Any] = {}
        for part in loc:
            node = nodes.setdefault(part, {"field": part, "errors": [], "children": {}})
            nodes = node["children"]
        node["errors"].append(error.get("msg", "Invalid value"))

    return [_render(node) for node in roots.values()]


def _render(node: dict[str, Any]) -> dict[str, Any]:
    rendered: dict[str, Any] = {"field": node["field"], "errors": node["errors"]}
    if node["children"]:
        rendered["children"] = [_render(child) for child in node["children"].values()]
    return rendered


def validation_error(errors: Iterable[Mapping[str, Any]]) -> DomainError:
    """Build the VALIDATION domain error for a batch of pydantic errors."""
    return DomainError.validation("Validation failed", details=format_validation_errors(errors))


def validate_payload(model: type[ModelT], payload: Any) -> ModelT:
    """
    Validate a raw payload against a request model.

    Raises:
        DomainError: VALIDATION listing every violated field
    """
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise validation_error(e.errors()) from e
