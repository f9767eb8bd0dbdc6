# JSON Schema validation of tool arguments.

from typing import Any, Dict, List

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError
from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """One violated constraint, located by a JSON-pointer style path ('' is the root)."""
    path: str = Field(default="", description="Location of the offending value, e.g. '/b'.")
    message: str = Field(..., description="What is wrong with the value.")


def _pointer(parts) -> str:
    return "".join(f"/{part}" for part in parts)


class SchemaValidator:
    """
    Validates values against JSON Schemas with the Draft 2020-12 validator,
    including format checks such as 'date'. Any object exposing the same
    ``validate(schema, value)`` method can replace it in the toolbox options.
    """

    def __init__(self, validator_cls=Draft202012Validator):
        self._validator_cls = validator_cls
        self._format_checker = validator_cls.FORMAT_CHECKER

    def validate(self, schema: Dict[str, Any], value: Any) -> List[ValidationIssue]:
        validator = self._validator_cls(schema, format_checker=self._format_checker)
        issues = [self._to_issue(error) for error in validator.iter_errors(value)]
        return sorted(issues, key=lambda issue: issue.path)

    @staticmethod
    def _to_issue(error: ValidationError) -> ValidationIssue:
        path = list(error.absolute_path)
        if error.validator == "required":
            # Report the missing property at its own location.
            missing = next(
                (name for name in error.validator_value if error.message.startswith(repr(name))),
                None,
            )
            if missing is not None:
                return ValidationIssue(path=_pointer(path + [missing]), message="is required")
        return ValidationIssue(path=_pointer(path), message=error.message)
