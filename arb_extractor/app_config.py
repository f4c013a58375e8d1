"""Application configuration: tool settings, Flutter's l10n.yaml and the OpenAI client."""
import logging
import os
import posixpath
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from openai import AsyncOpenAI

from arb_extractor.logging_config import setup_logger
from arb_extractor.translation_provider import LANGUAGE_NAMES

CONFIG_FILE_ENV = 'ARB_EXTRACTOR_CONFIG_FILE'
DEFAULT_CONFIG_FILE = 'arb_extractor.yaml'
L10N_CONFIG_FILE = 'l10n.yaml'


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    project_path: str

    # Flutter gen-l10n settings
    source_dir: str
    arb_dir: str
    template_arb_file: str
    output_dir: str
    output_localization_file: str
    output_class: str
    template_locale: str

    # Translation settings
    model_name: str
    translation_delay_seconds: float
    language_codes: Dict[str, str]

    # Processing settings
    dry_run: bool
    translate: bool
    run_build_commands: bool

    openai_client: Optional[AsyncOpenAI] = field(default=None, repr=False)

    @property
    def import_path(self) -> Optional[str]:
        """Path of the generated localizations file relative to ``lib/``, or None if it lives outside."""
        output_dir = posixpath.normpath(self.output_dir.replace('\\', '/'))
        relative = posixpath.relpath(output_dir, 'lib')
        if relative.startswith('..'):
            return None
        if relative == '.':
            return self.output_localization_file
        return f"{relative}/{self.output_localization_file}"

    @property
    def reference_template(self) -> str:
        return f"{self.output_class}.of(context)!.{{key}}"


def _load_dotenv_files(project_path: str) -> Optional[str]:
    """Load a .env file from the Flutter project root, else from the working directory."""
    for candidate in (os.path.join(project_path, '.env'), os.path.join(os.getcwd(), '.env')):
        if os.path.exists(candidate):
            load_dotenv(candidate)
            return candidate
    return None


def _read_yaml_mapping(path: str) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as stream:
        loaded = yaml.safe_load(stream)
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"'{path}' must contain a YAML dictionary")
    return loaded


def _load_yaml_config(project_path: str) -> Dict[str, Any]:
    """Load the tool's YAML configuration; any problem falls back to defaults with a notice."""
    config_file = os.environ.get(CONFIG_FILE_ENV, os.path.join(project_path, DEFAULT_CONFIG_FILE))
    if not os.path.isabs(config_file):
        config_file = os.path.abspath(config_file)

    if not os.path.exists(config_file):
        return {}

    try:
        config = _read_yaml_mapping(config_file)
    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file '{config_file}': {e}", file=sys.stderr)
        print("Please check your YAML syntax. Using default configuration.", file=sys.stderr)
        return {}
    except (OSError, ValueError) as e:
        print(f"Error: Could not load configuration file '{config_file}': {e}", file=sys.stderr)
        print("Using default configuration.", file=sys.stderr)
        return {}
    print(f"Successfully loaded configuration from: {config_file}", file=sys.stderr)
    return config


def _load_l10n_config(project_path: str, logger: logging.Logger) -> Dict[str, Any]:
    """Read Flutter's own ``l10n.yaml``, if the project has one."""
    l10n_path = os.path.join(project_path, L10N_CONFIG_FILE)
    if not os.path.exists(l10n_path):
        logger.debug("No %s found, using gen-l10n defaults", L10N_CONFIG_FILE)
        return {}
    try:
        return _read_yaml_mapping(l10n_path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.warning("Could not read '%s', using gen-l10n defaults: %s", l10n_path, e)
        return {}


def _setup_logger_from_config(config: Dict[str, Any], log_level: Optional[str]) -> logging.Logger:
    log_config = config.get('logging', {}) or {}
    log_level_str = log_level or os.environ.get(
        'ARB_EXTRACTOR_LOG_LEVEL', log_config.get('log_level', 'INFO')
    )
    log_file_path = log_config.get('log_file_path')
    log_to_console = log_config.get('log_to_console', True)
    return setup_logger(log_level_str, log_file_path, log_to_console)


def _build_language_mappings(locales_list: List[Dict[str, str]]) -> Dict[str, str]:
    """Known language names, extended by the configured supported locales."""
    language_codes: Dict[str, str] = dict(LANGUAGE_NAMES)
    for locale in locales_list:
        code = locale.get('code')
        name = locale.get('name')
        if code and name:
            language_codes[code] = name
    return language_codes


def _create_openai_client(dry_run: bool, translate: bool, logger: logging.Logger) -> Optional[AsyncOpenAI]:
    """Create the OpenAI client when translations are wanted; otherwise locales are copied."""
    if dry_run or not translate:
        logger.debug("Translation disabled, OpenAI client will not be initialized")
        return None

    api_key_from_env = os.environ.get('OPENAI_API_KEY')
    if not api_key_from_env:
        logger.warning("OPENAI_API_KEY environment variable not found; new locales will copy the template texts.")
        return None

    client = AsyncOpenAI(api_key=api_key_from_env)
    logger.info("OpenAI client initialized successfully")
    return client


def load_app_config(
        project_path: str,
        dry_run: bool = False,
        translate: bool = True,
        log_level: Optional[str] = None
) -> AppConfig:
    """
    Load application configuration from YAML files and environment variables.

    Args:
        project_path (str): Root of the Flutter project.
        dry_run (bool): Whether the run must not modify any file.
        translate (bool): Whether new locales should be machine translated.
        log_level (Optional[str]): Overrides the configured log level.

    Returns:
        AppConfig: The loaded application configuration.
    """
    project_path = os.path.abspath(project_path)
    dotenv_path = _load_dotenv_files(project_path)
    config = _load_yaml_config(project_path)
    logger = _setup_logger_from_config(config, log_level)

    if dotenv_path:
        logger.debug("Loaded environment variables from: %s", dotenv_path)

    l10n = _load_l10n_config(project_path, logger)
    arb_dir = l10n.get('arb-dir', 'lib/l10n')
    model_name = os.environ.get('ARB_EXTRACTOR_MODEL_NAME', config.get('model_name', 'gpt-4o-mini'))

    return AppConfig(
        project_path=project_path,
        source_dir=config.get('source_dir', 'lib'),
        arb_dir=arb_dir,
        template_arb_file=l10n.get('template-arb-file', 'app_en.arb'),
        output_dir=l10n.get('output-dir', arb_dir),
        output_localization_file=l10n.get('output-localization-file', 'app_localizations.dart'),
        output_class=l10n.get('output-class', 'AppLocalizations'),
        template_locale=config.get('template_locale', 'en'),
        model_name=model_name,
        translation_delay_seconds=float(config.get('translation_delay_seconds', 0.1)),
        language_codes=_build_language_mappings(config.get('supported_locales', []) or []),
        dry_run=dry_run,
        translate=translate,
        run_build_commands=bool(config.get('run_build_commands', True)),
        openai_client=_create_openai_client(dry_run, translate, logger)
    )
