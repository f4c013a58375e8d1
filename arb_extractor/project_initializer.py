"""Bootstraps a Flutter project for gen-l10n based localization."""
import logging
import os
import re
from typing import Any, Callable, Dict, List, Optional

import yaml

from arb_extractor.arb_manager import LOCALE_KEY, write_arb_file
from arb_extractor.models import InitializationResult

logger = logging.getLogger(__name__)

INTL_VERSION = '^0.20.2'

DEFAULT_L10N_CONFIG = {
    'arb-dir': 'lib/l10n',
    'template-arb-file': 'app_en.arb',
    'output-localization-file': 'app_localizations.dart',
}


def _load_pubspec(content: str) -> Dict[str, Any]:
    data = yaml.safe_load(content)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("pubspec.yaml must contain a YAML mapping")
    return data


def add_dependency(content: str, name: str, value: str, section: str = 'dependencies') -> str:
    """
    Add a dependency line right below a top-level section header.

    ``value`` is either a version constraint or a nested ``sdk: flutter``
    mapping. The section is appended when it does not exist yet.
    """
    newline = '\r\n' if '\r\n' in content else '\n'
    if value.startswith('sdk:'):
        entry = f"  {name}:{newline}    {value}{newline}"
    else:
        entry = f"  {name}: {value}{newline}"

    header = re.compile(rf'^{re.escape(section)}:[ \t]*(?:#.*)?\r?\n', re.MULTILINE)
    match = header.search(content)
    if match:
        return content[:match.end()] + entry + content[match.end():]

    if content and not content.endswith('\n'):
        content += newline
    return f"{content}{newline}{section}:{newline}{entry}"


def enable_generate_flag(content: str) -> str:
    """Ensure the top-level ``flutter:`` section contains ``generate: true``."""
    newline = '\r\n' if '\r\n' in content else '\n'
    disabled = re.compile(r'^([ \t]+)generate:[ \t]*false\b', re.MULTILINE)
    if disabled.search(content):
        return disabled.sub(r'\1generate: true', content, count=1)
    header = re.compile(r'^flutter:[ \t]*(?:#.*)?\r?\n', re.MULTILINE)
    match = header.search(content)
    if match:
        return content[:match.end()] + f"  generate: true{newline}" + content[match.end():]
    if content and not content.endswith('\n'):
        content += newline
    return f"{content}{newline}flutter:{newline}  generate: true{newline}"


class ProjectInitializer:
    """
    Prepares a project for localization: dependencies, ``l10n.yaml``, the ARB
    directory and the initial template file.

    Each step runs even if an earlier one failed; failures are collected in
    the returned result.
    """

    def __init__(self, project_path: str, l10n_config: Optional[Dict[str, str]] = None, template_locale: str = 'en'):
        self.project_path = project_path
        self.l10n_config = dict(l10n_config or DEFAULT_L10N_CONFIG)
        self.template_locale = template_locale

    @property
    def pubspec_path(self) -> str:
        return os.path.join(self.project_path, 'pubspec.yaml')

    @property
    def l10n_config_path(self) -> str:
        return os.path.join(self.project_path, 'l10n.yaml')

    @property
    def arb_directory(self) -> str:
        return os.path.join(self.project_path, self.l10n_config['arb-dir'])

    @property
    def template_path(self) -> str:
        return os.path.join(self.arb_directory, self.l10n_config['template-arb-file'])

    def initialize(self) -> InitializationResult:
        logger.info("Initializing Flutter localization in project: %s", self.project_path)
        steps: List[tuple[Callable[[], None], str, str]] = [
            (self.update_pubspec, "Updated pubspec.yaml with dependencies", "Failed to update pubspec.yaml"),
            (self.create_l10n_config, "Created l10n.yaml configuration", "Failed to create l10n.yaml"),
            (self.create_l10n_directory, f"Created {self.l10n_config['arb-dir']} directory",
             "Failed to create l10n directory"),
            (self.create_initial_arb_file, f"Created initial ARB file ({self.l10n_config['template-arb-file']})",
             "Failed to create ARB file"),
        ]

        results: List[str] = []
        errors: List[str] = []
        for step, success_message, failure_message in steps:
            try:
                step()
            except (OSError, ValueError, yaml.YAMLError) as e:
                errors.append(f"{failure_message}: {e}")
                logger.error("%s: %s", failure_message, e)
                continue
            results.append(success_message)
            logger.info(success_message)

        return InitializationResult(success=not errors, results=results, errors=errors)

    def update_pubspec(self) -> None:
        """Add ``flutter_localizations`` and ``intl`` and turn on code generation."""
        if not os.path.exists(self.pubspec_path):
            raise FileNotFoundError(f"pubspec.yaml not found at {self.pubspec_path}")

        with open(self.pubspec_path, 'r', encoding='utf-8', newline='') as f:
            content = f.read()
        pubspec = _load_pubspec(content)
        dependencies = pubspec.get('dependencies') or {}
        flutter_section = pubspec.get('flutter') or {}

        modified = False
        if 'intl' not in dependencies:
            content = add_dependency(content, 'intl', INTL_VERSION)
            modified = True
        if 'flutter_localizations' not in dependencies:
            content = add_dependency(content, 'flutter_localizations', 'sdk: flutter')
            modified = True
        if not (isinstance(flutter_section, dict) and flutter_section.get('generate') is True):
            content = enable_generate_flag(content)
            modified = True

        if not modified:
            logger.info("pubspec.yaml already configured, skipping...")
            return
        # Refuse to write a manifest that no longer parses.
        _load_pubspec(content)
        with open(self.pubspec_path, 'w', encoding='utf-8', newline='') as f:
            f.write(content)

    def create_l10n_config(self) -> None:
        if os.path.exists(self.l10n_config_path):
            logger.info("l10n.yaml already exists, skipping...")
            return
        with open(self.l10n_config_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.l10n_config, f, default_flow_style=False, sort_keys=False)

    def create_l10n_directory(self) -> None:
        if os.path.isdir(self.arb_directory):
            logger.info("%s directory already exists, skipping...", self.l10n_config['arb-dir'])
            return
        os.makedirs(self.arb_directory)

    def create_initial_arb_file(self) -> None:
        if os.path.exists(self.template_path):
            logger.info("%s already exists, skipping...", self.l10n_config['template-arb-file'])
            return
        write_arb_file(self.template_path, {LOCALE_KEY: self.template_locale})
