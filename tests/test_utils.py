"""Tests for tagged names and utterance segmentation."""

from __future__ import annotations

import pytest

from utils import build_tagged_name, extract_entities, parse_tagged_name, split_utterance


def test_split_short_marker_at_end() -> None:
    assert split_utterance("order a {size-123}") == [{"text": "order a "}, {"param": "123"}]


def test_split_voiceflow_marker() -> None:
    assert split_utterance("order a {{[size].abc}} pizza") == [
        {"text": "order a "},
        {"param": "abc"},
        {"text": " pizza"},
    ]


def test_split_without_markers() -> None:
    assert split_utterance("just text") == [{"text": "just text"}]


def test_split_empty_utterance() -> None:
    assert split_utterance("") == []


def test_split_multiple_markers() -> None:
    assert split_utterance("{size-1} pizza with {topping-2} and {{[drink].3}}") == [
        {"param": "1"},
        {"text": " pizza with "},
        {"param": "2"},
        {"text": " and "},
        {"param": "3"},
    ]


def test_split_adjacent_markers() -> None:
    assert split_utterance("{a-1}{b-2}") == [{"param": "1"}, {"param": "2"}]
    assert split_utterance("x{{[a].1}}{{[b].2}}y") == [
        {"text": "x"},
        {"param": "1"},
        {"param": "2"},
        {"text": "y"},
    ]


def test_split_marker_is_whole_utterance() -> None:
    assert split_utterance("{size-123}") == [{"param": "123"}]


def test_split_name_with_dashes_uses_last_dash() -> None:
    assert split_utterance("{pizza-size-9}") == [{"param": "9"}]


@pytest.mark.parametrize(
    "utterance",
    [
        "order a {size-}",
        "order a {-123}",
        "order a {size 123}",
        "order a {size-123",
        "order a {{[size].}}",
        "order a {{[size] .1}}",
        "{}",
        "{{size-123}}",
        "{{size-123}",
        "{size-123}}",
    ],
)
def test_split_malformed_markers_are_text(utterance: str) -> None:
    assert split_utterance(utterance) == [{"text": utterance}]


def test_extract_entities_positions() -> None:
    entities = extract_entities("a {{[size].s1}} b {topping-t1}")
    assert entities == [
        {"index": 2, "raw": "{{[size].s1}}", "name": "size", "id": "s1"},
        {"index": 18, "raw": "{topping-t1}", "name": "topping", "id": "t1"},
    ]


def test_tagged_name() -> None:
    tagged = build_tagged_name("size", "abc123")
    assert tagged == "size__abc123-vf"
    assert parse_tagged_name(tagged) == ("size", "abc123")


def test_parse_tagged_name_keeps_underscores_in_name() -> None:
    assert parse_tagged_name("pizza__size__abc-vf") == ("pizza__size", "abc")


@pytest.mark.parametrize("name", ["size", "size__abc", "size__abc-xx", "size__a-b-vf", ""])
def test_parse_untagged_name(name: str) -> None:
    assert parse_tagged_name(name) is None
