"""
JSON Schemas for the DenyList configuration file and the detection output.

Two schemas:
1. DENY_LIST_CONFIG_SCHEMA  — external deny-list configuration document
2. DETECTION_RESULT_SCHEMA  — serialized DetectionResult (to_dict)
"""
from pii_detection.config.constants import ENTITY_SOURCES, SUPPORTED_LANGUAGES

# =============================================================================
# 1. DenyList configuration file
# =============================================================================
_PATTERN_ENTRY: dict = {
    "oneOf": [
        {"type": "string", "minLength": 1},
        {
            "type": "object",
            "additionalProperties": False,
            "required": ["pattern"],
            "properties": {
                "pattern": {"type": "string", "minLength": 1},
                "type": {"type": "string", "enum": ["regex", "string"]},
                "flags": {"type": "string", "pattern": "^[gimsuy]*$"},
            },
        },
    ]
}

_PATTERN_LIST: dict = {"type": "array", "items": _PATTERN_ENTRY}

DENY_LIST_CONFIG_SCHEMA: dict = {
    "type": "object",
    "additionalProperties": False,
    "required": ["global", "byEntityType", "byLanguage"],
    "properties": {
        "version": {"type": "string"},
        "global": _PATTERN_LIST,
        "byEntityType": {
            "type": "object",
            "additionalProperties": _PATTERN_LIST,
        },
        "byLanguage": {
            "type": "object",
            "additionalProperties": _PATTERN_LIST,
        },
    },
}

# =============================================================================
# 2. Detection result (DetectionResult.to_dict)
# =============================================================================
_ENTITY_SCHEMA: dict = {
    "type": "object",
    "required": ["id", "type", "text", "start", "end", "confidence", "source"],
    "properties": {
        "id": {"type": "string"},
        "type": {"type": "string"},
        "text": {"type": "string"},
        "start": {"type": "integer", "minimum": 0},
        "end": {"type": "integer", "minimum": 0},
        "confidence": {"type": "number", "minimum": 0, "maximum": 1},
        "source": {"type": "string", "enum": sorted(ENTITY_SOURCES)},
        "logical_id": {"type": ["string", "null"]},
        "flagged_for_review": {"type": "boolean"},
        "selected": {"type": "boolean"},
        "validation": {
            "type": ["object", "null"],
            "required": ["status"],
            "properties": {
                "status": {"type": "string", "enum": ["valid", "invalid", "unchecked"]},
            },
        },
        "context": {
            "type": ["object", "null"],
            "required": ["factors", "total"],
        },
        "metadata": {"type": "object"},
        "components": {"type": "array"},
    },
}

DETECTION_RESULT_SCHEMA: dict = {
    "type": "object",
    "required": ["document_id", "language", "entities", "metadata"],
    "properties": {
        "document_id": {"type": "string"},
        "language": {"type": "string", "enum": SUPPORTED_LANGUAGES},
        "entities": {"type": "array", "items": _ENTITY_SCHEMA},
        "metadata": {
            "type": "object",
            "required": [
                "total_duration_ms",
                "pass_results",
                "pass_timings",
                "entity_counts",
                "flagged_count",
            ],
            "properties": {
                "total_duration_ms": {"type": "number", "minimum": 0},
                "pass_results": {"type": "array"},
                "pass_timings": {"type": "object"},
                "entity_counts": {"type": "object"},
                "flagged_count": {"type": "integer", "minimum": 0},
                "epic8": {
                    "type": ["object", "null"],
                    "properties": {
                        "deny_list_filtered": {"type": "object"},
                        "context_boosted": {"type": "object"},
                    },
                },
            },
        },
    },
}
