"""Prompt construction and response parsing for model-backed categorization.

This module builds:
- The system instructions and the per-transaction user content shared by the
  on-device and cloud tiers.
- The strict ``response_format`` (JSON Schema) object for the OpenAI
  Responses API.
- :func:`parse_decision`, which turns raw model text into a
  :class:`~txn_pipeline.models.Categorization` or ``None``.

Parsing is lenient about framing (```json fences, chatter around the object)
and strict about content: the object must validate against
:class:`ModelDecision`.
"""

from __future__ import annotations

import json
import re
from decimal import Decimal

from openai.types.responses.response_format_text_json_schema_config_param import (
    ResponseFormatTextJSONSchemaConfigParam,
)
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .logging_setup import get_logger
from .models import Categorization, Category, CategorySource

_logger = get_logger("txn_pipeline.prompting")

DEFAULT_CONFIDENCE = 0.8

CATEGORY_GUIDE: tuple[tuple[Category, str], ...] = (
    (Category.FOOD, "Restaurants, food delivery (Swiggy, Zomato), cafes, fast food"),
    (Category.GROCERIES, "Supermarkets, grocery stores, BigBasket, Blinkit, DMart"),
    (Category.TRANSPORT, "Uber, Ola, Metro, Petrol, Auto, Railways"),
    (Category.SHOPPING, "Amazon, Flipkart, Myntra, clothing, electronics"),
    (Category.UTILITIES, "Electricity, water, gas, mobile recharge, internet"),
    (Category.ENTERTAINMENT, "Netflix, Hotstar, movies, games, Spotify"),
    (Category.HEALTH, "Pharmacy, hospitals, doctors, gym, fitness"),
    (Category.TRANSFERS, "Person-to-person transfers, money sent to individuals"),
    (Category.OTHER, "Anything that doesn't fit above categories"),
)


def build_system_instructions() -> str:
    return (
        "You are a financial transaction categorizer for Indian users. "
        "Categorize each transaction into exactly one of the listed categories. "
        "Never invent categories. Output JSON only."
    )


def build_user_content(merchant_text: str, amount: Decimal | None = None) -> str:
    """Return the prompt body for one transaction.

    The merchant text is quoted with ``json.dumps`` so embedded quotes cannot
    break out of the field.
    """

    lines = [
        "<task>",
        "Categorize this transaction into exactly one category.",
        "</task>",
        "",
        "<transaction>",
        f"Merchant/Description: {json.dumps(merchant_text, ensure_ascii=False)}",
    ]
    if amount is not None:
        lines.append(f"Amount: ₹{format(amount, 'f')}")
    lines += ["</transaction>", "", "<categories>"]
    for n, (cat, examples) in enumerate(CATEGORY_GUIDE, start=1):
        lines.append(f"{n}. {cat.value} - {examples}")
    lines += [
        "</categories>",
        "",
        "<format>",
        "Respond ONLY with valid JSON:",
        "{",
        '  "category": "CATEGORY_NAME",',
        '  "subcategory": "optional subcategory or null",',
        '  "merchant_name": "cleaned merchant name",',
        '  "confidence": 0.0 to 1.0,',
        '  "reasoning": "brief explanation"',
        "}",
        "</format>",
    ]
    return "\n".join(lines)


def build_prompt(merchant_text: str, amount: Decimal | None = None) -> str:
    """Single-string prompt for runtimes without a separate instructions slot."""

    return build_system_instructions() + "\n\n" + build_user_content(merchant_text, amount)


def build_response_format() -> ResponseFormatTextJSONSchemaConfigParam:
    """Return the strict JSON Schema response_format for one decision."""

    codes = [c.value for c in Category]
    result: ResponseFormatTextJSONSchemaConfigParam = {
        "type": "json_schema",
        "name": "transaction_category",
        "schema": {
            "type": "object",
            "properties": {
                "category": {"type": "string", "enum": codes},
                "subcategory": {"type": ["string", "null"]},
                "merchant_name": {"type": ["string", "null"]},
                "confidence": {"type": "number", "minimum": 0, "maximum": 1},
                "reasoning": {"type": "string"},
            },
            "required": ["category", "subcategory", "merchant_name", "confidence", "reasoning"],
            "additionalProperties": False,
        },
        "strict": True,
    }
    return result


# ---- Response parsing --------------------------------------------------------


class ModelDecision(BaseModel):
    """One decision as emitted by a model. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    category: str
    subcategory: str | None = None
    merchant_name: str | None = Field(
        default=None, validation_alias=AliasChoices("merchant_name", "merchant")
    )
    confidence: float | None = None
    reasoning: str | None = None


_FENCED = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)


def extract_json_object(text: str) -> str | None:
    """Return the JSON object text inside ``text`` (fenced block first, then ``{...}``)."""

    m = _FENCED.search(text)
    if m:
        return m.group(1)
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def _to_category(raw: str) -> Category:
    try:
        return Category(raw.strip().upper())
    except ValueError:
        return Category.OTHER


def parse_decision(
    text: str,
    source: CategorySource,
    *,
    default_confidence: float = DEFAULT_CONFIDENCE,
) -> Categorization | None:
    """Parse a model reply into a categorization, or ``None`` when unusable."""

    blob = extract_json_object(text or "")
    if blob is None:
        _logger.warning("decision_parse_failed reason=no_json source=%s", source)
        return None
    try:
        decision = ModelDecision.model_validate(json.loads(blob))
    except (json.JSONDecodeError, ValidationError) as e:
        _logger.warning(
            "decision_parse_failed reason=%s source=%s", e.__class__.__name__, source
        )
        return None
    conf = default_confidence if decision.confidence is None else decision.confidence
    return Categorization(
        category=_to_category(decision.category),
        confidence=min(1.0, max(0.0, conf)),
        source=source,
        subcategory=decision.subcategory or None,
        merchant_name=decision.merchant_name or None,
    )


__all__ = [
    "CATEGORY_GUIDE",
    "DEFAULT_CONFIDENCE",
    "ModelDecision",
    "build_prompt",
    "build_response_format",
    "build_system_instructions",
    "build_user_content",
    "extract_json_object",
    "parse_decision",
]
