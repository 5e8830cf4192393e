import re

# Suffix marking records that were created from a VF project
TAG = "vf"

# Label carrying the VF intent key on a Dialogflow CX intent
INTENT_ID_LABEL = "vf_intent_id"

TAGGED_NAME_PATTERN = re.compile(rf"^(.*)__([^-]*)-{TAG}$")

# {{[name].id}} as written by Voiceflow, or the short form {name-id}
ENTITY_MARKER_PATTERN = re.compile(
    r"\{\{\[(?P<vf_name>[^ .\[\]{}]+?)\]\.(?P<vf_id>[^ .\[\]{}]+?)\}\}"
    r"|(?<!\{)\{(?P<name>[^{}\s]+)-(?P<id>[^{}\s-]+)\}(?!\})"
)


def build_tagged_name(name: str, record_id: str) -> str:
    """Embeds a local VF id into a remote display name."""
    return f"{name}__{record_id}-{TAG}"


def parse_tagged_name(full_name: str) -> tuple[str, str] | None:
    """Recovers (name, id) from a tagged display name, None if it is not tagged."""
    match = TAGGED_NAME_PATTERN.match(full_name)
    if not match:
        return None
    name, record_id = match.groups()
    return name, record_id


def extract_entities(utterance: str) -> list[dict]:
    """Finds all entity markers in an utterance, in order of appearance."""
    entities = []
    for match in ENTITY_MARKER_PATTERN.finditer(utterance):
        entities.append(
            {
                "index": match.start(),
                "raw": match.group(0),
                "name": match.group("vf_name") or match.group("name"),
                "id": match.group("vf_id") or match.group("id"),
            }
        )
    return entities


def split_utterance(utterance: str) -> list[dict]:
    """
    Splits an utterance into literal text and parameter reference segments.

    Every entity marker becomes a {"param": <entity id>} segment, the text
    around markers becomes {"text": ...} segments. Empty text between
    adjacent markers or at the string boundaries is not emitted, and anything
    that is not a well formed marker stays literal text.

    Args:
      utterance: The example utterance as authored in the VF project.

    Returns:
      list[dict]: The segments in order.
    """
    segments = []
    start = 0
    for entity in extract_entities(utterance):
        if entity["index"] > start:
            segments.append({"text": utterance[start : entity["index"]]})
        segments.append({"param": entity["id"]})
        start = entity["index"] + len(entity["raw"])

    if start < len(utterance):
        segments.append({"text": utterance[start:]})
    return segments
