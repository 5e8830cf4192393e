"""Tests for loading VF project files."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from vf_project import (
    ProjectFileError,
    get_entity_value,
    get_intents,
    get_synonym_groups,
    get_topics,
    load_vf_project,
)


def test_load_valid_project(vf_file: Path, vf_project: dict) -> None:
    assert load_vf_project(str(vf_file)) == vf_project


def test_load_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ProjectFileError, match="not found"):
        load_vf_project(str(tmp_path / "missing.vf"))


def test_load_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "broken.vf"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ProjectFileError, match="not valid JSON"):
        load_vf_project(str(path))


def test_load_rejects_wrong_shape(tmp_path: Path) -> None:
    path = tmp_path / "other.vf"
    path.write_text(json.dumps({"version": {"platformData": {"slots": []}}}), encoding="utf-8")
    with pytest.raises(ProjectFileError, match="VF export"):
        load_vf_project(str(path))


def test_get_intents_skips_built_ins(vf_project: dict) -> None:
    assert [intent["key"] for intent in get_intents(vf_project)] == ["order1", "top1"]


def test_get_topics(vf_project: dict) -> None:
    topics = get_topics(vf_project)
    assert [(topic["id"], topic["name"]) for topic in topics] == [
        ("d1", "Checkout"),
        ("topic3", "Delivery"),
    ]


def test_get_topics_without_diagrams(vf_project: dict) -> None:
    del vf_project["diagrams"]
    assert get_topics(vf_project) == []


def test_synonym_groups_are_trimmed() -> None:
    entity = {"key": "k", "name": "size", "inputs": ["small, s", " , ", "large,l,,big"]}
    assert get_synonym_groups(entity) == [["small", "s"], ["large", "l", "big"]]


def test_entity_value() -> None:
    assert get_entity_value({"key": "k", "name": "size", "inputs": ["small,s"]}) == "small"
    assert get_entity_value({"key": "k", "name": "size", "inputs": []}) == "size"
