"""Reads, merges and writes ARB (Application Resource Bundle) files."""
import json
import logging
import os
import re
from typing import Any, Dict, Iterable, List, Set, Tuple

import jsonschema

from arb_extractor.errors import ConfigurationError
from arb_extractor.models import ExtractedLiteral

logger = logging.getLogger(__name__)

LOCALE_KEY = '@@locale'
METADATA_PREFIX = '@'

# Content values are plain strings, ``@key`` metadata entries are objects and
# ``@@`` keys are file-level attributes.
ARB_SCHEMA = {
    "type": "object",
    "properties": {
        LOCALE_KEY: {"type": "string"}
    },
    "patternProperties": {
        "^@@": {},
        "^@(?!@)": {"type": "object"},
        "^[^@]": {"type": "string"}
    }
}

ArbEntry = Tuple[str, str, str]


def is_metadata_key(key: str) -> bool:
    return key.startswith(METADATA_PREFIX)


def metadata_key(key: str) -> str:
    return f"{METADATA_PREFIX}{key}"


def load_arb_file(file_path: str) -> Dict[str, Any]:
    """
    Load and validate an ARB file, preserving key order.

    Args:
        file_path (str): The path to the ARB file.

    Returns:
        Dict[str, Any]: The ARB document.

    Raises:
        ConfigurationError: If the file is unreadable, not JSON, or not a valid ARB document.
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            content = json.load(f)
    except json.JSONDecodeError as json_exc:
        raise ConfigurationError(f"ARB file '{file_path}' is not valid JSON: {json_exc}") from json_exc
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Could not read ARB file '{file_path}': {e}") from e

    try:
        jsonschema.validate(instance=content, schema=ARB_SCHEMA)
    except jsonschema.ValidationError as schema_exc:
        raise ConfigurationError(f"ARB file '{file_path}' is malformed: {schema_exc.message}") from schema_exc
    return content


def write_arb_file(file_path: str, content: Dict[str, Any]) -> None:
    """Write an ARB document with two-space indentation and a trailing newline."""
    directory = os.path.dirname(file_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(file_path, 'w', encoding='utf-8') as f:
        f.write(json.dumps(content, indent=2, ensure_ascii=False))
        f.write('\n')


def content_keys(content: Dict[str, Any]) -> List[str]:
    """Message keys of an ARB document in file order, without metadata keys."""
    return [key for key in content if not is_metadata_key(key)]


class ArbManager:
    """Manages the template ARB file of a Flutter project and its locale siblings."""

    def __init__(
            self,
            project_path: str,
            arb_dir: str = 'lib/l10n',
            template_file: str = 'app_en.arb',
            template_locale: str = 'en'
    ):
        self.project_path = project_path
        self.arb_dir = arb_dir
        self.template_file = template_file
        self.template_locale = template_locale

    @property
    def arb_directory(self) -> str:
        return os.path.join(self.project_path, self.arb_dir)

    @property
    def template_path(self) -> str:
        return os.path.join(self.arb_directory, self.template_file)

    def locale_file_path(self, locale: str) -> str:
        """Path of the ARB file for ``locale``, named after the template (``app_en.arb`` -> ``app_es.arb``)."""
        stem, extension = os.path.splitext(self.template_file)
        match = re.match(rf'^(.*[_-]){re.escape(self.template_locale)}$', stem)
        prefix = match.group(1) if match else 'app_'
        return os.path.join(self.arb_directory, f"{prefix}{locale}{extension or '.arb'}")

    def exists(self) -> bool:
        return os.path.isfile(self.template_path)

    def read(self) -> Dict[str, Any]:
        """Read the template ARB file, or return a fresh document if it does not exist yet."""
        if not self.exists():
            return {LOCALE_KEY: self.template_locale}
        return load_arb_file(self.template_path)

    def source_locale(self) -> str:
        """Locale declared by the template file, falling back to the configured one."""
        return self.read().get(LOCALE_KEY, self.template_locale)

    def get_existing_ids(self) -> Set[str]:
        """Reads all existing message keys from the template ARB file."""
        return set(content_keys(self.read()))

    def merge(self, entries: Iterable[ArbEntry]) -> int:
        """
        Add new messages to the template ARB file.

        Keys that already exist are left untouched, so merging the same batch
        twice has no further effect. New keys are appended after the existing
        ones in the order given, each followed by its ``@key`` metadata.

        Args:
            entries: ``(key, text, description)`` tuples.

        Returns:
            int: The number of keys added.
        """
        content = self.read()
        added = 0
        for key, text, description in entries:
            if key in content:
                logger.debug("Key '%s' already present in ARB file, leaving it unchanged", key)
                continue
            content[key] = text
            content[metadata_key(key)] = {'description': description}
            added += 1

        if not added:
            logger.info("No new text entries for %s", self.template_path)
            return 0
        write_arb_file(self.template_path, content)
        logger.info("ARB file updated: %s", self.template_path)
        logger.info("Added %d text entries", added)
        return added

    def add_texts_to_arb(self, literals: Iterable[ExtractedLiteral]) -> int:
        """Adds keyed literals to the template ARB file."""
        return self.merge(
            (literal.assigned_key, literal.text, literal.description)
            for literal in literals
        )

    def get_statistics(self) -> Dict[str, int]:
        """Count message keys and how many of them carry metadata."""
        if not self.exists():
            return {'total': 0, 'withMetadata': 0}
        content = load_arb_file(self.template_path)
        keys = content_keys(content)
        with_metadata = sum(1 for key in keys if isinstance(content.get(metadata_key(key)), dict))
        return {
            'total': len(keys),
            'withMetadata': with_metadata
        }
