"""Pytest configuration.

The repository keeps its modules at the top level without a package. This conftest ensures tests
can import them when running `pytest` without installing the project.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def vf_project() -> dict:
    return {
        "version": {
            "rootDiagramID": "root",
            "platformData": {
                "slots": [
                    {"key": "size1", "name": "size", "inputs": ["small, s", "large,l,big"]},
                    {"key": "topping1", "name": "topping", "inputs": ["cheese"]},
                    {"key": "empty1", "name": "empty", "inputs": []},
                ],
                "intents": [
                    {
                        "key": "order1",
                        "name": "order_pizza",
                        "slots": [{"id": "size1", "required": True}],
                        "inputs": [
                            {"text": "order a {{[size].size1}} pizza", "slots": ["size1"]},
                            {"text": "I want a pizza"},
                        ],
                    },
                    {"key": "VF.HELP", "name": "VF.HELP", "inputs": [{"text": "help"}]},
                    {
                        "key": "top1",
                        "name": "add_topping",
                        "inputs": [{"text": "add {topping-topping1}", "slots": ["topping1"]}],
                    },
                ],
            },
        },
        "diagrams": {
            "root": {"name": "ROOT", "type": "TOPIC"},
            "d1": {"_id": "d1", "name": "Checkout", "type": "TOPIC"},
            "d2": {"name": "Shared", "type": "COMPONENT"},
            "d3": {"diagramID": "topic3", "name": "Delivery"},
        },
    }


@pytest.fixture
def vf_file(tmp_path: Path, vf_project: dict) -> Path:
    path = tmp_path / "project.vf"
    path.write_text(json.dumps(vf_project), encoding="utf-8")
    return path
