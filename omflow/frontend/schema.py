"""
Structural schema for the Base Modelica documents the compiler emits.

Only the parts the pipeline reads are constrained; unknown keys pass.
"""

import jsonschema

_COMPONENT = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string"},
        "type": {"type": "string"},
        "dimensions": {"type": ["array", "null"]},
    },
}

_EQUATION = {
    "type": "object",
    "required": ["eq_type"],
    "properties": {"eq_type": {"enum": ["simple", "for", "if", "when"]}},
}

BASE_MODELICA_SCHEMA = {
    "type": "object",
    "required": ["model_name"],
    "properties": {
        "model_name": {"type": "string"},
        "constants": {"type": "array", "items": _COMPONENT},
        "parameters": {"type": "array", "items": _COMPONENT},
        "variables": {"type": "array", "items": _COMPONENT},
        "equations": {"type": "array", "items": _EQUATION},
        "initial_equations": {"type": "array", "items": _EQUATION},
    },
}


def validate_document(document: dict) -> list[str]:
    """Return a list of validation error messages (empty if valid)."""
    validator = jsonschema.Draft7Validator(BASE_MODELICA_SCHEMA)
    errors = []
    for error in sorted(validator.iter_errors(document), key=lambda e: [str(p) for p in e.path]):
        location = ".".join(str(p) for p in error.path)
        errors.append(f"{location}: {error.message}" if location else error.message)
    return errors
