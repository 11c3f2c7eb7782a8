from __future__ import annotations

from typing import Any

import jsonschema

_TEXT = {"type": ["string", "null"]}
_PARAGRAPHS = {
    "anyOf": [
        {"type": "string"},
        {"type": "array", "items": {"type": "string"}},
        {"type": "null"},
    ]
}

NEWS_ITEM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["slug", "title"],
    "properties": {
        "id": {"type": ["string", "integer", "null"]},
        "slug": {"type": "string", "minLength": 1},
        "title": {"type": "string"},
        "title_ar": _TEXT,
        "shortDescription": _TEXT,
        "shortDescription_ar": _TEXT,
        "description": _PARAGRAPHS,
        "description_ar": _PARAGRAPHS,
        "images": {
            "type": ["array", "null"],
            "items": {
                "anyOf": [
                    {"type": "string"},
                    {
                        "type": "object",
                        "required": ["url"],
                        "properties": {
                            "url": {"type": "string"},
                            "width": {"type": ["number", "null"]},
                            "height": {"type": ["number", "null"]},
                        },
                    },
                ]
            },
        },
        "date": {"type": ["string", "null"]},
    },
}

NEWS_DOCUMENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["news"],
    "properties": {"news": {"type": "array"}},
}

LINKEDIN_DOCUMENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "anyOf": [
        {"required": ["linkedinPosts"], "properties": {"linkedinPosts": {"type": "array"}}},
        {"required": ["posts"], "properties": {"posts": {"type": "array"}}},
    ],
}

PARTNERS_DOCUMENT_SCHEMA: dict[str, Any] = {
    "anyOf": [
        {"type": "array"},
        {
            "type": "object",
            "required": ["partners"],
            "properties": {"partners": {"type": "array"}},
        },
    ]
}

SITE_CONFIG_SCHEMA: dict[str, Any] = {"type": "object"}

RECORD_SCHEMA: dict[str, Any] = {"type": "object"}


def schema_errors(value: Any, schema: dict[str, Any]) -> list[str]:
    validator = jsonschema.Draft7Validator(schema)
    errors = []
    for error in sorted(validator.iter_errors(value), key=lambda item: list(item.path)):
        location = ".".join(str(part) for part in error.path) or "<root>"
        errors.append(f"{location}: {error.message}")
    return errors
