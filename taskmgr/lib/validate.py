"""
Record validation against the bundled JSON Schemas.

Repositories call validate_before_write() on every row they insert or
update. Field rules (non-empty titles, rank range, status vocabularies, ID
formats) live in taskmgr/schemas/<name>.schema.json; relationship rules live
in the IntegrityAuthority.
"""

import json
from pathlib import Path

import jsonschema
from jsonschema.exceptions import best_match

from .errors import InvalidArgumentError

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"

# One compiled validator per schema name
_validators: dict[str, jsonschema.Draft7Validator] = {}


class ValidationError(InvalidArgumentError):
    """A record does not match its schema."""

    def __init__(self, schema_name: str, message: str, path: str | None = None):
        self.schema_name = schema_name
        self.path = path
        self.detail = message
        super().__init__(f"[{schema_name}] {message}" + (f" at {path}" if path else ""))


def _validator(schema_name: str) -> jsonschema.Draft7Validator:
    if schema_name not in _validators:
        schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
        if not schema_path.exists():
            raise ValidationError(schema_name, f"Schema file not found: {schema_path}")
        schema = json.loads(schema_path.read_text())
        jsonschema.Draft7Validator.check_schema(schema)
        _validators[schema_name] = jsonschema.Draft7Validator(schema)
    return _validators[schema_name]


def validate(data: dict, schema_name: str) -> None:
    """
    Check data against a named schema.

    When several rules fail, the most specific one is reported.

    Raises:
        ValidationError: data does not match, or the schema does not exist
    """
    error = best_match(_validator(schema_name).iter_errors(data))
    if error is None:
        return
    path = ".".join(str(p) for p in error.absolute_path) or "(root)"
    raise ValidationError(schema_name, error.message, path)


def validate_before_write(data: dict, schema_name: str, target: str) -> None:
    """Like validate(), with the destination table named in the message."""
    try:
        validate(data, schema_name)
    except ValidationError as e:
        raise ValidationError(
            schema_name,
            f"Refusing to write invalid data to {target}: {e.detail}",
            e.path,
        ) from None
