"""Prompt construction for the classification fallback.

This module builds:
- the system instructions for single-transaction classification;
- the user content (the German taxonomy plus one transaction as JSON);
- the strict JSON Schema ``text`` config for the OpenAI Responses API.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from openai.types.responses.response_format_text_json_schema_config_param import (
    ResponseFormatTextJSONSchemaConfigParam,
)

TRANSACTION_FIELD_ORDER: tuple[str, ...] = (
    "date",
    "amount",
    "direction",
    "raw_vendor",
    "normalized_vendor",
    "description",
)


def build_system_instructions() -> str:
    return (
        "You categorize German bank and credit card transactions. Choose exactly one "
        "category from the provided taxonomy (prefer the most specific child; otherwise "
        "the parent). Never invent categories. Output JSON only that conforms to the "
        "specified schema."
    )


def serialize_transaction(tx: Mapping[str, Any]) -> str:
    """Serialize one transaction with a fixed field order."""

    return json.dumps({k: tx.get(k) for k in TRANSACTION_FIELD_ORDER}, ensure_ascii=False)


def _taxonomy_lines(taxonomy: Sequence[Mapping[str, Any]]) -> list[str]:
    children: dict[str, list[str]] = {}
    for r in taxonomy:
        pc = r.get("parent_code")
        if pc:
            children.setdefault(str(pc), []).append(str(r.get("code")))
    lines = ["Taxonomy (two levels):"]
    for r in taxonomy:
        if r.get("parent_code"):
            continue
        code = str(r.get("code"))
        lines.append(f"  • {code}")
        lines.extend(f"    - {c}" for c in children.get(code, []))
    return lines


def build_user_content(tx: Mapping[str, Any], taxonomy: Sequence[Mapping[str, Any]]) -> str:
    parts = _taxonomy_lines(taxonomy)
    parts.append("")
    parts.append("BEGIN_TRANSACTION")
    parts.append(serialize_transaction(tx))
    parts.append("END_TRANSACTION")
    parts.append("")
    parts.append(
        "Respond with the chosen `category` code and a one-sentence `reasoning`. "
        "Amounts are in cents; `debit` is money leaving the account."
    )
    return "\n".join(parts)


def build_response_format(
    taxonomy: Sequence[Mapping[str, Any]],
) -> ResponseFormatTextJSONSchemaConfigParam:
    """Return the strict JSON Schema format restricting ``category`` to known codes."""

    codes: list[str] = [
        c for c in dict.fromkeys(str(entry.get("code") or "").strip() for entry in taxonomy) if c
    ]
    if not codes:
        raise ValueError("taxonomy must contain at least one non-blank 'code'")

    return {
        "type": "json_schema",
        "name": "transaction_category",
        "schema": {
            "type": "object",
            "properties": {
                "category": {"type": "string", "enum": codes},
                "reasoning": {"type": "string"},
            },
            "required": ["category", "reasoning"],
            "additionalProperties": False,
        },
        "strict": True,
    }


__all__ = [
    "TRANSACTION_FIELD_ORDER",
    "build_response_format",
    "build_system_instructions",
    "build_user_content",
    "serialize_transaction",
]
