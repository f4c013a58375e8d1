"""Replaces extracted literals in Dart sources with localized message references."""
import logging
import os
import re
from typing import Iterable, List, Optional, Tuple

import yaml

from arb_extractor.dart_parser import string_literal_at
from arb_extractor.errors import ReplacementError
from arb_extractor.models import ExtractedLiteral

logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_TEMPLATE = 'AppLocalizations.of(context)!.{key}'
DEFAULT_IMPORT_MARKER = '/l10n/app_localizations.dart'

_IMPORT_LIKE = re.compile(
    r'''^[ \t]*(?:(?:import|export)\s+['"][^'"]*['"][^;]*|library(?:\s+[\w.]+)?\s*);''',
    re.MULTILINE
)
_PART_OF = re.compile(r'^[ \t]*part\s+of\b', re.MULTILINE)


def read_package_name(project_path: str) -> Optional[str]:
    """
    Read the package name declared in the project's ``pubspec.yaml``.

    Returns:
        Optional[str]: The package name, or None if it cannot be determined.
    """
    pubspec_path = os.path.join(project_path, 'pubspec.yaml')
    if not os.path.exists(pubspec_path):
        return None
    try:
        with open(pubspec_path, 'r', encoding='utf-8') as f:
            pubspec = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read '%s': %s", pubspec_path, e)
        return None
    if not isinstance(pubspec, dict):
        return None
    name = pubspec.get('name')
    if isinstance(name, str) and name.strip():
        return name.strip()
    return None


def build_import_statement(package_name: str, import_path: str) -> str:
    """Build the package import for the generated localizations file, e.g. ``l10n/app_localizations.dart``."""
    return f"import 'package:{package_name}/{import_path}';"


def _read_source(file_path: str) -> str:
    with open(file_path, 'r', encoding='utf-8', newline='') as f:
        return f.read()


def _write_source(file_path: str, content: str) -> None:
    with open(file_path, 'w', encoding='utf-8', newline='') as f:
        f.write(content)


class SourceRewriter:
    """
    Substitutes literals at their recorded source spans.

    Every span is re-parsed before it is replaced: if the text there is no longer
    the same simple string literal (the file was edited after extraction), the
    literal is reported as not replaced instead of guessing another occurrence.
    """

    def __init__(
            self,
            reference_template: str = DEFAULT_REFERENCE_TEMPLATE,
            import_statement: Optional[str] = None,
            import_marker: str = DEFAULT_IMPORT_MARKER
    ):
        self.reference_template = reference_template
        self.import_statement = import_statement
        self.import_marker = import_marker

    def reference_for(self, key: str) -> str:
        return self.reference_template.format(key=key)

    def _substitute(self, content: str, literal: ExtractedLiteral) -> Optional[str]:
        end = literal.offset + literal.length
        if not literal.assigned_key or end > len(content):
            return None
        found = string_literal_at(content, literal.offset, end)
        if found is None or found.is_interpolated or found.value != literal.text:
            return None
        return content[:literal.offset] + self.reference_for(literal.assigned_key) + content[end:]

    def replace(self, file_path: str, literal: ExtractedLiteral) -> bool:
        """
        Replace one literal in ``file_path`` with its message reference.

        Returns:
            bool: False if the literal is no longer at its recorded position.
        """
        replaced, _ = self.replace_literals(file_path, [literal])
        return bool(replaced)

    def replace_literals(
            self,
            file_path: str,
            literals: Iterable[ExtractedLiteral]
    ) -> Tuple[List[ExtractedLiteral], List[str]]:
        """
        Replace several literals of the same file and write it once.

        Substitutions run from the end of the file towards the start so the
        recorded offsets of the remaining literals stay valid.

        Args:
            file_path (str): The Dart file to rewrite.
            literals: Keyed literals recorded in ``file_path``.

        Returns:
            Tuple[List[ExtractedLiteral], List[str]]: The replaced literals in
            source order and one error message per literal that was not replaced.
        """
        pending = sorted(literals, key=lambda item: item.offset, reverse=True)
        try:
            content = _read_source(file_path)
        except (OSError, UnicodeDecodeError) as e:
            return [], [str(ReplacementError(file_path, literal.text, str(e))) for literal in reversed(pending)]

        replaced: List[ExtractedLiteral] = []
        errors: List[str] = []
        for literal in pending:
            updated = self._substitute(content, literal)
            if updated is None:
                errors.append(str(ReplacementError(file_path, literal.text)))
                continue
            content = updated
            replaced.append(literal)

        if replaced:
            _write_source(file_path, content)
        replaced.reverse()
        errors.reverse()
        return replaced, errors

    def ensure_import(self, file_path: str) -> bool:
        """
        Insert the localizations import once.

        The import goes after the last import/export/library directive, or at
        the top of the file when there is none. Files that already contain the
        import marker are left alone.

        Returns:
            bool: True if the file was modified.
        """
        if not self.import_statement:
            return False
        content = _read_source(file_path)
        if self.import_marker in content:
            return False
        if _PART_OF.search(content):
            logger.warning(
                "'%s' is a part file; add the import to its library instead.",
                os.path.basename(file_path)
            )
            return False

        newline = '\r\n' if '\r\n' in content else '\n'
        matches = list(_IMPORT_LIKE.finditer(content))
        if matches:
            position = matches[-1].end()
            content = content[:position] + newline + self.import_statement + content[position:]
        else:
            content = self.import_statement + newline + content

        _write_source(file_path, content)
        logger.info("Added import to %s", os.path.basename(file_path))
        return True
