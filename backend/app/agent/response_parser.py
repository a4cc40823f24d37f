import json
import logging
import re
from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError

from app.agent.artifacts import GeneratedPayload
from app.agent.errors import GenerationInvalid

logger = logging.getLogger(__name__)

_LEADING_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*\s*", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\s*```$")


class ParseFailure(str, Enum):
    empty = "empty"
    invalid_json = "invalid_json"
    not_an_object = "not_an_object"
    schema_mismatch = "schema_mismatch"


@dataclass(frozen=True)
class ParseOutcome:
    payload: GeneratedPayload | None = None
    failure: ParseFailure | None = None
    detail: str = ""
    cause: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.payload is not None


def strip_code_fences(text: str) -> str:
    """Remove one wrapping markdown fence (```json ... ```), if present."""
    cleaned = _LEADING_FENCE.sub("", (text or "").strip())
    cleaned = _TRAILING_FENCE.sub("", cleaned)
    return cleaned.strip()


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "payload"
        parts.append(f"{location}: {item.get('msg', 'invalid')}")
    return "; ".join(parts)


def inspect_generated_text(raw_text: str) -> ParseOutcome:
    """Classify raw model output as a payload or a named failure. Never raises."""
    text = strip_code_fences(raw_text)
    if not text:
        return ParseOutcome(failure=ParseFailure.empty, detail="model returned no content")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        return ParseOutcome(failure=ParseFailure.invalid_json, detail=str(exc), cause=exc)

    if not isinstance(data, dict):
        return ParseOutcome(
            failure=ParseFailure.not_an_object,
            detail=f"expected a JSON object, got {type(data).__name__}",
        )

    try:
        payload = GeneratedPayload.model_validate(data)
    except ValidationError as exc:
        return ParseOutcome(
            failure=ParseFailure.schema_mismatch,
            detail=_describe_validation_error(exc),
            cause=exc,
        )
    return ParseOutcome(payload=payload)


def parse_generated_payload(raw_text: str) -> GeneratedPayload:
    outcome = inspect_generated_text(raw_text)
    if outcome.payload is not None:
        return outcome.payload

    reason = outcome.failure.value if outcome.failure else "unknown"
    logger.warning("Rejected generated article output (%s): %s", reason, outcome.detail)
    raise GenerationInvalid(reason, outcome.detail) from outcome.cause
