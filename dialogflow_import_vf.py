# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""A command-line tool to import a Voiceflow project into Dialogflow CX.

This script reads an exported .vf project file and creates the entity types,
intents and (optionally) flow pages that are missing in a Dialogflow CX agent.
Records that already exist in the agent are skipped, nothing is updated or
deleted.
"""

import argparse
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
import logging
import os
import re
import sys

from google.api_core import client_options
from google.api_core.exceptions import GoogleAPICallError
from google.api_core.retry import Retry
from google.cloud import dialogflowcx_v3
from langcodes import Language, tag_is_valid
from tqdm import tqdm

from enums import ResourceType
from utils import (
    INTENT_ID_LABEL,
    build_tagged_name,
    extract_entities,
    parse_tagged_name,
    split_utterance,
)
from vf_project import (
    ProjectFileError,
    get_entities,
    get_entity_value,
    get_intents,
    get_synonym_groups,
    get_topics,
    load_vf_project,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s", stream=sys.stdout
)
logger = logging.getLogger(__name__)

DEFAULT_VF_FILE = "project.vf"

# Number of create requests in flight at the same time
DEFAULT_MAX_WORKERS = 8

# The Default Start Flow has a fixed ID in every agent
DEFAULT_START_FLOW_ID = "00000000-0000-0000-0000-000000000000"

# Entity type used for parameters whose entity could not be created
SYS_ANY_ENTITY_TYPE = "projects/-/locations/-/agents/-/entityTypes/sys.any"

AGENT_NAME_PATTERN = re.compile(r"^projects/[^/]+/locations/([^/]+)/agents/[^/]+$")


@dataclass
class UploadResult:
    created: int = 0
    skipped: int = 0
    failed: list[str] = field(default_factory=list)


class VoiceflowDialogflowImporter:
    def __init__(
        self,
        agent_name: str,
        language_code: str | None = None,
        api_endpoint: str | None = None,
        keyfile: str | None = None,
        flow_name: str | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        intents_client: dialogflowcx_v3.IntentsClient | None = None,
        entity_types_client: dialogflowcx_v3.EntityTypesClient | None = None,
        pages_client: dialogflowcx_v3.PagesClient | None = None,
    ):
        match = AGENT_NAME_PATTERN.match(agent_name or "")
        if not match:
            raise ValueError(
                f"Invalid agent name '{agent_name}', expected projects/<P>/locations/<L>/agents/<A>"
            )
        self.agent_name = agent_name
        self.location = match.group(1)
        self.language_code = language_code or ""
        self.api_endpoint = api_endpoint
        self.keyfile = keyfile
        self.flow_name = flow_name or f"{agent_name}/flows/{DEFAULT_START_FLOW_ID}"
        self.max_workers = max_workers

        self.intents_client = intents_client or self._get_cx_client(dialogflowcx_v3.IntentsClient)
        self.entity_types_client = entity_types_client or self._get_cx_client(
            dialogflowcx_v3.EntityTypesClient
        )
        self.pages_client = pages_client or self._get_cx_client(dialogflowcx_v3.PagesClient)

    def _get_cx_client(self, client_class):
        """Returns a Dialogflow CX client for the agent's region and credentials."""
        api_endpoint = self.api_endpoint
        if not api_endpoint and self.location != "global":
            api_endpoint = f"{self.location}-dialogflow.googleapis.com"
        client_options_ = None
        if api_endpoint or self.keyfile:
            client_options_ = client_options.ClientOptions(
                api_endpoint=api_endpoint, credentials_file=self.keyfile
            )
        return client_class(client_options=client_options_)

    # Remote state

    def get_existing_intent_ids(self) -> set[str]:
        """Returns the VF keys of intents that were already imported."""
        logger.info(f"Retrieving intents for agent: {self.agent_name}")
        request = dialogflowcx_v3.ListIntentsRequest(
            parent=self.agent_name, language_code=self.language_code
        )
        intents = list(self.intents_client.list_intents(request=request, retry=Retry()))
        logger.info(f"Retrieved {len(intents)} intents.")
        return {
            intent.labels[INTENT_ID_LABEL]
            for intent in intents
            if INTENT_ID_LABEL in intent.labels
        }

    def get_remote_entity_type_names(self) -> dict[str, str]:
        """Maps VF slot keys to the resource names of already imported entity types."""
        logger.info(f"Retrieving entity types for agent: {self.agent_name}")
        request = dialogflowcx_v3.ListEntityTypesRequest(
            parent=self.agent_name, language_code=self.language_code
        )
        entity_types = list(
            self.entity_types_client.list_entity_types(request=request, retry=Retry())
        )
        logger.info(f"Retrieved {len(entity_types)} entity types.")
        remote_entity_names = {}
        for entity_type in entity_types:
            parsed = parse_tagged_name(entity_type.display_name)
            if parsed:
                _, entity_id = parsed
                remote_entity_names[entity_id] = entity_type.name
        return remote_entity_names

    def get_existing_page_ids(self) -> set[str]:
        """Returns the VF diagram IDs of pages that were already imported."""
        logger.info(f"Retrieving pages for flow: {self.flow_name}")
        request = dialogflowcx_v3.ListPagesRequest(
            parent=self.flow_name, language_code=self.language_code
        )
        pages = list(self.pages_client.list_pages(request=request, retry=Retry()))
        logger.info(f"Retrieved {len(pages)} pages.")
        existing = set()
        for page in pages:
            parsed = parse_tagged_name(page.display_name)
            if parsed:
                existing.add(parsed[1])
        return existing

    # Transformation into Dialogflow CX resources

    def build_entity_type(self, entity: dict) -> dialogflowcx_v3.EntityType:
        """Builds a map entity type, one entry per synonym group of the VF slot."""
        return dialogflowcx_v3.EntityType(
            display_name=build_tagged_name(entity["name"], entity["key"]),
            kind=dialogflowcx_v3.EntityType.Kind.KIND_MAP,
            entities=[
                dialogflowcx_v3.EntityType.Entity(value=synonyms[0], synonyms=synonyms)
                for synonyms in get_synonym_groups(entity)
            ],
        )

    def build_training_phrase(
        self, text: str, local_entities: dict[str, dict]
    ) -> dialogflowcx_v3.Intent.TrainingPhrase:
        """
        Converts a VF utterance into a training phrase.

        Entity markers become parts annotated with the parameter named after
        the entity, using the entity's sample value as text. Markers that
        refer to an entity missing from the project are kept verbatim as text.
        """
        parts = []

        def append_text(segment_text):
            # merge with the previous plain text part
            if parts and not parts[-1].parameter_id:
                parts[-1].text += segment_text
            else:
                parts.append(dialogflowcx_v3.Intent.TrainingPhrase.Part(text=segment_text))

        start = 0
        for marker in extract_entities(text):
            if marker["index"] > start:
                append_text(text[start : marker["index"]])
            start = marker["index"] + len(marker["raw"])

            entity = local_entities.get(marker["id"])
            if not entity:
                logger.warning(
                    f"Utterance '{text}' refers to unknown entity '{marker['id']}', keeping it as text"
                )
                append_text(marker["raw"])
                continue
            parts.append(
                dialogflowcx_v3.Intent.TrainingPhrase.Part(
                    text=get_entity_value(entity), parameter_id=entity["name"]
                )
            )

        if start < len(text):
            append_text(text[start:])
        return dialogflowcx_v3.Intent.TrainingPhrase(parts=parts, repeat_count=1)

    def get_intent_entity_ids(self, intent: dict, local_entities: dict[str, dict]) -> list[str]:
        """Returns the VF slot keys an intent uses, declared slots first."""
        entity_ids = []
        for slot in intent.get("slots") or []:
            if slot["id"] not in local_entities:
                logger.warning(
                    f"Intent '{intent['name']}' declares unknown entity '{slot['id']}', skipping parameter"
                )
                continue
            if slot["id"] not in entity_ids:
                entity_ids.append(slot["id"])

        for utterance in intent["inputs"]:
            for segment in split_utterance(utterance["text"]):
                entity_id = segment.get("param")
                if entity_id in local_entities and entity_id not in entity_ids:
                    entity_ids.append(entity_id)
        return entity_ids

    def build_intent(
        self,
        intent: dict,
        local_entities: dict[str, dict],
        remote_entity_names: dict[str, str],
    ) -> dialogflowcx_v3.Intent:
        parameters = []
        for entity_id in self.get_intent_entity_ids(intent, local_entities):
            entity_type = remote_entity_names.get(entity_id)
            if not entity_type:
                logger.warning(
                    f"Entity '{local_entities[entity_id]['name']}' of intent '{intent['name']}' "
                    "is not available in the agent, using sys.any"
                )
                entity_type = SYS_ANY_ENTITY_TYPE
            parameters.append(
                dialogflowcx_v3.Intent.Parameter(
                    id=local_entities[entity_id]["name"], entity_type=entity_type
                )
            )

        return dialogflowcx_v3.Intent(
            display_name=intent["name"],
            labels={INTENT_ID_LABEL: intent["key"]},
            parameters=parameters,
            training_phrases=[
                self.build_training_phrase(utterance["text"], local_entities)
                for utterance in intent["inputs"]
                if utterance["text"].strip()
            ],
        )

    def build_page(self, topic: dict) -> dialogflowcx_v3.Page:
        return dialogflowcx_v3.Page(display_name=build_tagged_name(topic["name"], topic["id"]))

    # Upload

    def _create_all(self, resource_type: ResourceType, records: list, create, on_created=None) -> UploadResult:
        """
        Runs the create calls of one resource type concurrently.

        Args:
          resource_type: The kind of resource, used for logging.
          records: (display name, record) pairs to create.
          create: Callable issuing the create call for one record.
          on_created: Optional callback receiving the record and the created resource.

        Returns:
          UploadResult: Counts of created records and names of failed ones.
        """
        result = UploadResult()
        if not records:
            return result

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix=f"create-{resource_type.key}"
        ) as executor:
            futures = {
                executor.submit(create, record): (display_name, record)
                for display_name, record in records
            }
            for future in tqdm(
                as_completed(futures),
                total=len(futures),
                desc=f"Creating {resource_type.label}s",
                dynamic_ncols=True,
            ):
                display_name, record = futures[future]
                try:
                    created = future.result()
                except GoogleAPICallError as e:
                    logger.error(f"Failed to create {resource_type.label} '{display_name}': {e}")
                    result.failed.append(display_name)
                    continue
                logger.debug(f"Created {resource_type.label} {created.name}")
                result.created += 1
                if on_created:
                    on_created(record, created)
        return result

    def _create_entity_type(self, entity_type: dialogflowcx_v3.EntityType) -> dialogflowcx_v3.EntityType:
        request = dialogflowcx_v3.CreateEntityTypeRequest(
            parent=self.agent_name, entity_type=entity_type, language_code=self.language_code
        )
        return self.entity_types_client.create_entity_type(request=request, retry=Retry())

    def _create_intent(self, intent: dialogflowcx_v3.Intent) -> dialogflowcx_v3.Intent:
        request = dialogflowcx_v3.CreateIntentRequest(
            parent=self.agent_name, intent=intent, language_code=self.language_code
        )
        return self.intents_client.create_intent(request=request, retry=Retry())

    def _create_page(self, page: dialogflowcx_v3.Page) -> dialogflowcx_v3.Page:
        request = dialogflowcx_v3.CreatePageRequest(
            parent=self.flow_name, page=page, language_code=self.language_code
        )
        return self.pages_client.create_page(request=request, retry=Retry())

    def upload_entities(
        self, project: dict, existing_entities: set[str], remote_entity_names: dict[str, str]
    ) -> UploadResult:
        """Creates missing entity types and records their names in remote_entity_names."""
        records = []
        skipped = 0
        for entity in get_entities(project):
            if entity["key"] in existing_entities:
                logger.info(
                    f"Skipping entity '{entity['name']}' that already exists in the agent"
                )
                skipped += 1
                continue
            logger.info(f"Uploading entity '{entity['name']}'")
            records.append((entity["name"], (entity, self.build_entity_type(entity))))

        def record_remote_name(record, created):
            entity, _ = record
            remote_entity_names[entity["key"]] = created.name

        result = self._create_all(
            ResourceType.ENTITY_TYPE,
            records,
            lambda record: self._create_entity_type(record[1]),
            record_remote_name,
        )
        result.skipped = skipped
        return result

    def upload_intents(
        self, project: dict, existing_intents: set[str], remote_entity_names: dict[str, str]
    ) -> UploadResult:
        local_entities = {entity["key"]: entity for entity in get_entities(project)}
        records = []
        skipped = 0
        for intent in get_intents(project):
            if intent["key"] in existing_intents:
                logger.info(
                    f"Skipping intent '{intent['name']}' that already exists in the agent"
                )
                skipped += 1
                continue
            logger.info(f"Uploading intent '{intent['name']}'")
            records.append(
                (intent["name"], self.build_intent(intent, local_entities, remote_entity_names))
            )

        result = self._create_all(ResourceType.INTENT, records, self._create_intent)
        result.skipped = skipped
        return result

    def upload_pages(self, project: dict, existing_pages: set[str]) -> UploadResult:
        records = []
        skipped = 0
        for topic in get_topics(project):
            if topic["id"] in existing_pages:
                logger.info(f"Skipping page '{topic['name']}' that already exists in the flow")
                skipped += 1
                continue
            logger.info(f"Uploading page '{topic['name']}'")
            records.append((topic["name"], self.build_page(topic)))

        result = self._create_all(ResourceType.PAGE, records, self._create_page)
        result.skipped = skipped
        return result

    def run(self, project: dict, include_pages: bool = False) -> dict[ResourceType, UploadResult]:
        """Imports a loaded VF project, entities strictly before intents."""
        existing_intents = self.get_existing_intent_ids()
        remote_entity_names = self.get_remote_entity_type_names()
        existing_entities = set(remote_entity_names)

        results = {}
        results[ResourceType.ENTITY_TYPE] = self.upload_entities(
            project, existing_entities, remote_entity_names
        )
        results[ResourceType.INTENT] = self.upload_intents(
            project, existing_intents, remote_entity_names
        )
        if include_pages:
            existing_pages = self.get_existing_page_ids()
            results[ResourceType.PAGE] = self.upload_pages(project, existing_pages)

        for resource_type, result in results.items():
            logger.info(
                f"{resource_type.label.capitalize()}s: {result.created} created, "
                f"{result.skipped} skipped, {len(result.failed)} failed"
            )
        return results


def language_code_type(value: str) -> str:
    """argparse type validating a BCP 47 language code."""
    if not tag_is_valid(value):
        raise argparse.ArgumentTypeError(f"'{value}' is not a valid language code")
    return value


def main(
    vf_file: str,
    agent_name: str | None,
    language_code: str | None = None,
    keyfile: str | None = None,
    api_endpoint: str | None = None,
    include_pages: bool = False,
    flow_name: str | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
    debug: bool | None = False,
) -> None:
    """Main function to orchestrate the import."""
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if not agent_name:
        logger.error("Agent name must be given with --agent_name or the PROJECT_NAME environment variable.")
        sys.exit(1)

    error_occurred = False
    try:
        logger.info(f"Reading {os.path.basename(vf_file)}")
        project = load_vf_project(vf_file)

        if language_code:
            logger.info(f"Importing {Language.get(language_code).display_name('en')} language data")

        importer = VoiceflowDialogflowImporter(
            agent_name,
            language_code=language_code,
            api_endpoint=api_endpoint,
            keyfile=keyfile,
            flow_name=flow_name,
            max_workers=max_workers,
        )
        results = importer.run(project, include_pages=include_pages)
        error_occurred = any(result.failed for result in results.values())

    except ProjectFileError as e:
        logger.error(str(e))
        error_occurred = True
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        error_occurred = True
    except KeyboardInterrupt:
        logger.warning("Command terminated by user (Ctrl+C).")
        error_occurred = True
    except Exception as e:
        logger.error(f"An unexpected error occurred: {e}", exc_info=True)
        error_occurred = True

    if error_occurred:
        sys.exit(1)
    sys.exit(0)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Imports a Voiceflow project into a Dialogflow CX agent.")
    parser.add_argument(
        "vf_file",
        nargs="?",
        default=DEFAULT_VF_FILE,
        help=f"Path to the exported .vf project file (default: {DEFAULT_VF_FILE})",
    )
    parser.add_argument(
        "--agent_name",
        default=os.environ.get("PROJECT_NAME"),
        help="Full Dialogflow CX agent name (projects/<P>/locations/<L>/agents/<A>). Defaults to $PROJECT_NAME.",
    )
    parser.add_argument(
        "--keyfile",
        default=os.environ.get("KEYFILE"),
        help="Service account key file. Defaults to $KEYFILE, then Application Default Credentials.",
    )
    parser.add_argument(
        "--api_endpoint",
        default=os.environ.get("API_ENDPOINT"),
        help="Dialogflow API endpoint. Defaults to $API_ENDPOINT, then the agent's regional endpoint.",
    )
    parser.add_argument(
        "--language_code",
        type=language_code_type,
        help="Language code of the imported data. Defaults to the agent's default language.",
    )
    parser.add_argument("--pages", action="store_true", help="Also create a flow page per VF topic")
    parser.add_argument(
        "--flow_name",
        help="Flow to create pages in. Defaults to the agent's Default Start Flow.",
    )
    parser.add_argument(
        "--max_workers",
        type=int,
        default=DEFAULT_MAX_WORKERS,
        help=f"Number of concurrent create requests (default: {DEFAULT_MAX_WORKERS})",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def cli(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    main(
        args.vf_file,
        args.agent_name,
        args.language_code,
        args.keyfile,
        args.api_endpoint,
        args.pages,
        args.flow_name,
        args.max_workers,
        args.debug,
    )


if __name__ == "__main__":
    cli()
