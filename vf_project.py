"""Loading and access helpers for exported Voiceflow (.vf) project files."""

import json
import logging

from jsonschema import ValidationError, validate

logger = logging.getLogger(__name__)

# Prefix of Voiceflow's built-in intents, these have no Dialogflow counterpart
BUILT_IN_INTENT_PREFIX = "VF."

TOPIC_DIAGRAM_TYPE = "TOPIC"

# Only the parts of the export the importer reads are constrained
VF_PROJECT_SCHEMA = {
    "type": "object",
    "properties": {
        "version": {
            "type": "object",
            "properties": {
                "rootDiagramID": {"type": ["string", "null"]},
                "platformData": {
                    "type": "object",
                    "properties": {
                        "slots": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "key": {"type": "string"},
                                    "name": {"type": "string"},
                                    "inputs": {"type": "array", "items": {"type": "string"}},
                                },
                                "required": ["key", "name", "inputs"],
                            },
                        },
                        "intents": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "key": {"type": "string"},
                                    "name": {"type": "string"},
                                    "slots": {
                                        "type": ["array", "null"],
                                        "items": {
                                            "type": "object",
                                            "properties": {"id": {"type": "string"}},
                                            "required": ["id"],
                                        },
                                    },
                                    "inputs": {
                                        "type": "array",
                                        "items": {
                                            "type": "object",
                                            "properties": {
                                                "text": {"type": "string"},
                                                "slots": {
                                                    "type": ["array", "null"],
                                                    "items": {"type": "string"},
                                                },
                                            },
                                            "required": ["text"],
                                        },
                                    },
                                },
                                "required": ["key", "name", "inputs"],
                            },
                        },
                    },
                    "required": ["slots", "intents"],
                },
            },
            "required": ["platformData"],
        },
        "diagrams": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "type": {"type": "string"},
                },
                "required": ["name"],
            },
        },
    },
    "required": ["version"],
}


class ProjectFileError(ValueError):
    """Raised when a VF project file cannot be read or is malformed."""


def load_vf_project(path: str) -> dict:
    """Reads and validates a VF project file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            project = json.load(f)
    except FileNotFoundError as e:
        raise ProjectFileError(f"Project file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ProjectFileError(f"Project file {path} is not valid JSON: {e}") from e

    try:
        validate(instance=project, schema=VF_PROJECT_SCHEMA)
    except ValidationError as e:
        raise ProjectFileError(
            f"Project file {path} does not look like a VF export: {e.message}"
        ) from e

    logger.debug(f"Loaded project file {path}")
    return project


def get_entities(project: dict) -> list[dict]:
    return project["version"]["platformData"]["slots"]


def get_intents(project: dict) -> list[dict]:
    """Returns the custom intents, built-in VF intents are left out."""
    return [
        intent
        for intent in project["version"]["platformData"]["intents"]
        if not intent["name"].startswith(BUILT_IN_INTENT_PREFIX)
    ]


def get_diagram_id(key: str, diagram: dict) -> str:
    return diagram.get("diagramID") or diagram.get("_id") or key


def get_topics(project: dict) -> list[dict]:
    """
    Returns the dialogue sub-topics of a project.

    Topics are the diagrams of type TOPIC (or without a type, as in older
    exports), excluding the root diagram the conversation starts in. Each
    returned dict is the diagram with its resolved "id".
    """
    root_diagram_id = project["version"].get("rootDiagramID")
    topics = []
    for key, diagram in project.get("diagrams", {}).items():
        diagram_id = get_diagram_id(key, diagram)
        if diagram_id == root_diagram_id:
            continue
        if diagram.get("type", TOPIC_DIAGRAM_TYPE) != TOPIC_DIAGRAM_TYPE:
            continue
        topics.append({**diagram, "id": diagram_id})
    return topics


def get_synonym_groups(entity: dict) -> list[list[str]]:
    """Splits each comma separated input of an entity into trimmed synonyms."""
    groups = []
    for input_ in entity["inputs"]:
        synonyms = [synonym.strip() for synonym in input_.split(",") if synonym.strip()]
        if synonyms:
            groups.append(synonyms)
    return groups


def get_entity_value(entity: dict) -> str:
    """Returns the canonical sample value of an entity, its name if it has none."""
    groups = get_synonym_groups(entity)
    if not groups:
        return entity["name"]
    return groups[0][0]
