"""JSON Schemas for model replies and persisted review results.

The screen and review schemas are sent to the model service as the declared
response format (strict mode: every property required, no extra keys) and are
also used to validate the parsed reply locally.
"""

from __future__ import annotations

from typing import Any, Dict, List

from jsonschema import Draft202012Validator

from .types import DECISIONS, ETHICS_FLAGS, RATING_FIELDS

SCREEN_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "is_desk_reject": {
            "type": "boolean",
            "description": "True if the paper should be desk rejected.",
        },
        "reason": {
            "type": "string",
            "description": "Detailed reason for rejection, or 'Pass' if accepted.",
        },
    },
    "required": ["is_desk_reject", "reason"],
    "additionalProperties": False,
}

RATINGS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {name: {"type": "integer"} for name in RATING_FIELDS},
    "required": list(RATING_FIELDS),
    "additionalProperties": False,
}

REVIEW_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "desk_reject_assessment": {
            "type": "string",
            "description": "Brief confirmation of length, topic, quality. "
            "State that the anonymity check was skipped.",
        },
        "summary": {"type": "string"},
        "strengths": {
            "type": "string",
            "description": "Detailed paragraphs describing strengths.",
        },
        "weaknesses": {
            "type": "string",
            "description": "Detailed paragraphs describing weaknesses.",
        },
        "missing_related_work": {"type": "string"},
        "questions_for_rebuttal": {"type": "string"},
        "ratings": RATINGS_SCHEMA,
        "final_decision": {"type": "string", "enum": list(DECISIONS)},
        "ethics_flag": {"type": "string", "enum": list(ETHICS_FLAGS)},
        "ethics_description": {"type": "string"},
        "genai_analysis": {
            "type": "string",
            "description": "Justification of whether content seems AI-generated.",
        },
    },
    "required": [
        "desk_reject_assessment",
        "summary",
        "strengths",
        "weaknesses",
        "missing_related_work",
        "questions_for_rebuttal",
        "ratings",
        "final_decision",
        "ethics_flag",
        "ethics_description",
        "genai_analysis",
    ],
    "additionalProperties": False,
}

# Shape of a ReviewResult as persisted in the history snapshot.
RESULT_RECORD_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "is_desk_reject": {"type": "boolean"},
        "desk_reject_reason": {"type": "string"},
        "desk_reject_assessment": {"type": "string"},
        "summary": {"type": "string"},
        "strengths": {"type": "string"},
        "weaknesses": {"type": "string"},
        "missing_related_work": {"type": "string"},
        "questions_for_rebuttal": {"type": "string"},
        "ratings": {
            "type": "object",
            "properties": {
                name: {"type": "integer", "minimum": 0, "maximum": 10}
                for name in RATING_FIELDS
            },
            "required": list(RATING_FIELDS),
        },
        "final_decision": {"type": "string", "enum": list(DECISIONS)},
        "ethics_flag": {"type": "string", "enum": list(ETHICS_FLAGS)},
        "ethics_description": {"type": "string"},
        "genai_analysis": {"type": "string"},
        "raw_output": {"type": "string"},
    },
    "additionalProperties": False,
}


def validate_payload(obj: Any, schema: Dict[str, Any]) -> List[str]:
    """Return a list of error messages; empty list means valid."""
    validator = Draft202012Validator(schema)
    errors: List[str] = []
    for e in validator.iter_errors(obj):
        location = "/".join(str(p) for p in e.absolute_path)
        errors.append(f"{location}: {e.message}" if location else e.message)
    return errors


def validate_result_record(obj: Dict[str, Any]) -> List[str]:
    """Schema errors plus the desk-reject/full-review exclusivity rule."""
    errors = validate_payload(obj, RESULT_RECORD_SCHEMA)
    if obj.get("is_desk_reject") is True:
        for name in ("ratings", "final_decision", "summary"):
            if name in obj:
                errors.append(f"desk-rejected result must not carry '{name}'")
    return errors
