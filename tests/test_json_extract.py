"""Tests for JSON extraction from LLM output."""

import pytest

from adverse_media.json_extract import extract_json_from_text


def test__plain_json__is_parsed_directly() -> None:
    assert extract_json_from_text('{"riskScore": 10}') == {"riskScore": 10}


def test__fenced_json_block__yields_inner_object() -> None:
    text = 'Here is the result:\n```json\n{"riskScore": 10, "adverseContent": []}\n```'
    assert extract_json_from_text(text) == {"riskScore": 10, "adverseContent": []}


def test__unlabelled_fence__yields_inner_object() -> None:
    text = 'Result:\n```\n{"riskScore": 5}\n```\nThanks.'
    assert extract_json_from_text(text) == {"riskScore": 5}


def test__fenced_block__handles_nested_objects() -> None:
    text = '```json\n{"riskScore": 0, "entityMatch": {"isExactMatch": false, "confidence": 20}}\n```'
    assert extract_json_from_text(text) == {
        "riskScore": 0,
        "entityMatch": {"isExactMatch": False, "confidence": 20},
    }


def test__braces_in_prose__are_extracted() -> None:
    text = 'Sure. {"riskScore": 40, "entityMatch": {"confidence": 80}} Hope this helps.'
    assert extract_json_from_text(text) == {"riskScore": 40, "entityMatch": {"confidence": 80}}


def test__fenced_block__wins_over_braces_in_surrounding_prose() -> None:
    text = 'Schema: {"riskScore": int}. Answer:\n```json\n{"riskScore": 30}\n```\nSee {notes}.'
    assert extract_json_from_text(text) == {"riskScore": 30}


@pytest.mark.parametrize(
    "text",
    [
        "I could not analyze this page.",
        "",
        None,
        "{not json at all}",
        "[1, 2, 3]",
    ],
)
def test__no_object__returns_none(text: str | None) -> None:
    assert extract_json_from_text(text) is None
