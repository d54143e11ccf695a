"""Tests for the strict token and intent Pydantic schema."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.intent.schema import (
    DetectedIntent,
    FieldToken,
    IntentType,
    NumberToken,
    TokenType,
    token_from_obj,
)


def test_token_from_obj_uses_the_type_discriminator() -> None:
    token = token_from_obj(
        {
            "type": TokenType.field,
            "value": "giá bán",
            "normalized": "gia ban",
            "position": 0,
            "length": 7,
            "field_name": "retailPrice",
        }
    )

    assert isinstance(token, FieldToken)
    assert token.field_name == "retailPrice"
    assert token.end == 7


def test_token_rejects_unknown_keys() -> None:
    with pytest.raises(ValidationError):
        NumberToken(value="1", normalized="1", position=0, length=1, numeric_value=1.0, extra=True)


def test_token_rejects_negative_position() -> None:
    with pytest.raises(ValidationError):
        NumberToken(value="1", normalized="1", position=-1, length=1, numeric_value=1.0)


def test_tokens_are_immutable() -> None:
    token = NumberToken(value="1", normalized="1", position=0, length=1, numeric_value=1.0)

    with pytest.raises(ValidationError):
        token.numeric_value = 2.0  # type: ignore[misc]


def test_detected_intent_confidence_is_bounded() -> None:
    with pytest.raises(ValidationError):
        DetectedIntent(type=IntentType.sum_range, confidence=1.5, raw_input="tổng")


def test_detected_intent_success_threshold() -> None:
    assert DetectedIntent(type=IntentType.sum_range, confidence=0.3, raw_input="x").success
    assert not DetectedIntent(type=IntentType.sum_range, confidence=0.29, raw_input="x").success
