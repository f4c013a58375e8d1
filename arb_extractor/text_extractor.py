"""Collects hardcoded UI strings from Flutter widget construction call sites."""
import logging
import os
import re
from typing import Callable, Iterator, List, Tuple

from arb_extractor import dart_parser
from arb_extractor.dart_parser import DartUnit, StringLiteral
from arb_extractor.errors import ConfigurationError, ParseError
from arb_extractor.models import ExtractedLiteral

logger = logging.getLogger(__name__)

# Flutter widgets whose constructors commonly receive user-facing text.
TEXT_WIDGETS = frozenset({
    'Text',
    'AppBar',
    'TextButton',
    'ElevatedButton',
    'OutlinedButton',
    'IconButton',
    'FloatingActionButton',
    'SnackBar',
    'AlertDialog',
    'ListTile',
    'Tooltip',
    'Chip',
    'InputDecoration',
})

# Named parameters that carry text on the widgets above.
TEXT_PARAMETERS = frozenset({
    'title',
    'label',
    'tooltip',
    'text',
    'data',
    'message',
    'hintText',
    'labelText',
    'helperText',
    'errorText',
    'counterText',
    'prefixText',
    'suffixText',
    'semanticLabel',
})

# URLs, paths, IDs, constants and format strings are not UI text.
TECHNICAL_PATTERNS = [
    re.compile(r'^https?://'),
    re.compile(r'^www\.'),
    re.compile(r'^/'),
    re.compile(r'^\d+$'),
    re.compile(r'^[A-Z_]+$'),
    re.compile(r'%[sd]'),
    re.compile(r'\$\{'),
]

Resolver = Callable[[str], DartUnit]


def is_technical_string(text: str) -> bool:
    """Check whether a literal looks like a technical value rather than UI text."""
    return any(pattern.search(text) for pattern in TECHNICAL_PATTERNS)


def is_translatable(text: str) -> bool:
    """Return True if a literal should be extracted."""
    if len(text) < 2:
        return False
    return not is_technical_string(text)


def _iter_candidate_literals(unit: DartUnit) -> Iterator[Tuple[str, StringLiteral]]:
    for call in unit.call_sites:
        if call.type_name not in TEXT_WIDGETS:
            continue
        for argument in call.arguments:
            literal = argument.string_literal
            if literal is None:
                continue
            if argument.name is None:
                yield call.type_name, literal
            elif argument.name in TEXT_PARAMETERS:
                yield f"{call.type_name}.{argument.name}", literal


def extract_text_from_unit(unit: DartUnit) -> List[ExtractedLiteral]:
    """
    Extract translatable literals from an already parsed Dart unit.

    Args:
        unit (DartUnit): The parsed file.

    Returns:
        List[ExtractedLiteral]: Literals in source order, without assigned keys.
    """
    extracted = []
    for context_label, literal in _iter_candidate_literals(unit):
        if not is_translatable(literal.value):
            continue
        line, column = unit.location(literal.offset)
        extracted.append(ExtractedLiteral(
            text=literal.value,
            source_file=unit.path,
            offset=literal.offset,
            length=literal.length,
            line=line,
            column=column,
            context_label=context_label
        ))
    extracted.sort(key=lambda item: item.offset)
    return extracted


def extract_text_from_file(file_path: str, resolver: Resolver = dart_parser.resolve) -> List[ExtractedLiteral]:
    """
    Extract translatable literals from a single Dart file.

    Raises:
        ParseError: If the file cannot be resolved.
    """
    return extract_text_from_unit(resolver(file_path))


def find_dart_files(source_root: str) -> List[str]:
    """Return all ``.dart`` files below ``source_root`` in a stable order."""
    dart_files = []
    for directory, _, filenames in os.walk(source_root):
        for filename in filenames:
            if filename.endswith('.dart'):
                dart_files.append(os.path.join(directory, filename))
    return sorted(dart_files)


def extract_text_from_project(
        project_path: str,
        source_dir: str = 'lib',
        resolver: Resolver = dart_parser.resolve
) -> Tuple[List[ExtractedLiteral], List[str]]:
    """
    Extract all hardcoded widget texts from the Dart sources of a project.

    Files that fail to parse are skipped and reported as warnings; the
    remaining files are still processed.

    Args:
        project_path (str): Root of the Flutter project.
        source_dir (str): Source directory relative to the project root.
        resolver (Resolver): Syntax provider turning a file path into a DartUnit.

    Returns:
        Tuple[List[ExtractedLiteral], List[str]]: The literals in document
        order and the list of warning messages.

    Raises:
        ConfigurationError: If the source directory does not exist.
    """
    source_root = os.path.normpath(os.path.abspath(os.path.join(project_path, source_dir)))
    if not os.path.isdir(source_root):
        raise ConfigurationError(f"{source_dir} directory not found at: {source_root}")

    extracted: List[ExtractedLiteral] = []
    warnings: List[str] = []
    dart_files = find_dart_files(source_root)
    logger.debug("Scanning %d Dart file(s) under '%s'", len(dart_files), source_root)

    for file_path in dart_files:
        try:
            literals = extract_text_from_file(file_path, resolver)
        except ParseError as e:
            logger.warning("Skipping file: %s", e)
            warnings.append(str(e))
            continue
        if literals:
            logger.debug("Found %d text(s) in '%s'", len(literals), file_path)
        extracted.extend(literals)

    return extracted, warnings
