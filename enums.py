from enum import Enum

class ExtendedEnum(Enum):

    @classmethod
    def list(cls):
        return list(map(lambda c: c.value, cls))

# Dialogflow CX resources created from a VF project, in upload order
class ResourceType(ExtendedEnum):
    ENTITY_TYPE = "entity_type", "entity type"
    INTENT = "intent", "intent"
    PAGE = "page", "page"

    def __init__(self, key, label):
        self.key = key
        self.label = label
