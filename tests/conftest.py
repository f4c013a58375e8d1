import json
import logging
import os
from typing import Dict, Optional

import pytest

from arb_extractor.app_config import AppConfig
from arb_extractor.translation_provider import LANGUAGE_NAMES

PUBSPEC = """name: demo_app
description: A demo Flutter application.
version: 1.0.0+1

environment:
  sdk: '>=3.0.0 <4.0.0'

dependencies:
  flutter:
    sdk: flutter

flutter:
  uses-material-design: true
"""


class FlutterProject:
    """Builds a minimal Flutter project tree in a temporary directory."""

    def __init__(self, root: str):
        self.root = root

    def path(self, *parts: str) -> str:
        return os.path.join(self.root, *parts)

    def write(self, relative_path: str, content: str) -> str:
        file_path = self.path(*relative_path.split('/'))
        os.makedirs(os.path.dirname(file_path), exist_ok=True)
        with open(file_path, 'w', encoding='utf-8', newline='') as f:
            f.write(content)
        return file_path

    def read(self, relative_path: str) -> str:
        with open(self.path(*relative_path.split('/')), 'r', encoding='utf-8', newline='') as f:
            return f.read()

    def write_dart(self, relative_path: str, content: str) -> str:
        return self.write(f"lib/{relative_path}", content)

    def write_arb(self, content: Dict, file_name: str = 'app_en.arb') -> str:
        return self.write(f"lib/l10n/{file_name}", json.dumps(content, indent=2, ensure_ascii=False) + '\n')

    def read_arb(self, file_name: str = 'app_en.arb') -> Dict:
        return json.loads(self.read(f"lib/l10n/{file_name}"))

    def config(self, **overrides) -> AppConfig:
        values = dict(
            project_path=self.root,
            source_dir='lib',
            arb_dir='lib/l10n',
            template_arb_file='app_en.arb',
            output_dir='lib/l10n',
            output_localization_file='app_localizations.dart',
            output_class='AppLocalizations',
            template_locale='en',
            model_name='gpt-4o-mini',
            translation_delay_seconds=0,
            language_codes=dict(LANGUAGE_NAMES),
            dry_run=False,
            translate=False,
            run_build_commands=False,
            openai_client=None,
        )
        values.update(overrides)
        return AppConfig(**values)


@pytest.fixture
def flutter_project(tmp_path):
    """A Flutter project with a pubspec and an empty ``lib/`` directory."""
    project = FlutterProject(str(tmp_path))
    project.write('pubspec.yaml', PUBSPEC)
    os.makedirs(project.path('lib'), exist_ok=True)
    return project


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Keep handlers added by setup_logger from leaking between tests."""
    yield
    logger = logging.getLogger("arb_extractor")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def _dart_widget(body: str, imports: Optional[str] = None) -> str:
    """Wrap widget code in a small StatelessWidget."""
    header = imports if imports is not None else "import 'package:flutter/material.dart';\n"
    return (
        f"{header}\n"
        "class HomePage extends StatelessWidget {\n"
        "  const HomePage({super.key});\n"
        "\n"
        "  @override\n"
        "  Widget build(BuildContext context) {\n"
        f"    return {body};\n"
        "  }\n"
        "}\n"
    )


@pytest.fixture
def dart_widget():
    return _dart_widget
