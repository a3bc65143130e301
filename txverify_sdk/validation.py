"""
Structural validation of intents and encode API responses.

The parse functions never raise; they return a ParseOutcome carrying either
the typed value or the field-level issues pydantic reported.
"""
from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from .models import INTENT_TYPES, EncodeResponse, TransactionIntent, TransactionMode

T = TypeVar("T")

_intent_adapter: TypeAdapter = TypeAdapter(TransactionIntent)

# Discriminated union locations start with the tag, e.g. ("transfer", "amount")
_MODE_TAGS = frozenset(m.value for m in TransactionMode)


@dataclass(frozen=True)
class SchemaIssue:
    """One field-level problem found while parsing"""
    field: str
    message: str
    kind: str


@dataclass
class ParseOutcome(Generic[T]):
    value: Optional[T] = None
    issues: List[SchemaIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.value is not None and not self.issues


def _issues_from(exc: ValidationError, strip_tag: bool = False) -> List[SchemaIssue]:
    issues = []
    for err in exc.errors():
        loc = list(err.get("loc", ()))
        if strip_tag and loc and loc[0] in _MODE_TAGS:
            loc = loc[1:]
        if err.get("type", "").startswith("union_tag"):
            loc = ["mode"]
        path = ".".join(str(part) for part in loc) or "$"
        issues.append(SchemaIssue(field=path, message=err.get("msg", "invalid value"), kind=err.get("type", "")))
    return issues


def parse_intent(data: Any) -> "ParseOutcome[TransactionIntent]":
    """
    Parse a transaction intent from its JSON shape.

    Args:
        data: A dict in camelCase (or snake_case) form, or an intent model

    Returns:
        ParseOutcome with the typed intent, or the issues found
    """
    if isinstance(data, INTENT_TYPES):
        return ParseOutcome(value=data)
    try:
        return ParseOutcome(value=_intent_adapter.validate_python(data))
    except ValidationError as e:
        return ParseOutcome(issues=_issues_from(e, strip_tag=True))
    except (TypeError, ValueError) as e:
        return ParseOutcome(issues=[SchemaIssue(field="$", message=str(e), kind="invalid")])


def parse_encode_response(data: Any) -> "ParseOutcome[EncodeResponse]":
    """
    Parse the response of the encode endpoint.
    """
    if isinstance(data, EncodeResponse):
        return ParseOutcome(value=data)
    try:
        return ParseOutcome(value=EncodeResponse.model_validate(data))
    except ValidationError as e:
        return ParseOutcome(issues=_issues_from(e))
    except (TypeError, ValueError) as e:
        return ParseOutcome(issues=[SchemaIssue(field="$", message=str(e), kind="invalid")])
