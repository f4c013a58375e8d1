"""Runs the extraction workflow over a Flutter project."""
import logging
import os
from typing import Callable, Dict, List, Optional

from arb_extractor import dart_parser
from arb_extractor.app_config import AppConfig
from arb_extractor.arb_manager import ArbManager
from arb_extractor.build_tools import run_flutter_commands
from arb_extractor.identifiers import assign_unique_ids
from arb_extractor.locale_propagator import LocalePropagator
from arb_extractor.models import ExtractedLiteral, L10nResult, PropagationResult
from arb_extractor.source_rewriter import SourceRewriter, build_import_statement, read_package_name
from arb_extractor.text_extractor import Resolver, extract_text_from_project
from arb_extractor.translation_provider import OpenAITranslator, Translator

logger = logging.getLogger(__name__)

BuildRunner = Callable[[str], List[str]]


def group_by_file(literals: List[ExtractedLiteral]) -> Dict[str, List[ExtractedLiteral]]:
    """Group literals by source file, keeping first-seen file order."""
    grouped: Dict[str, List[ExtractedLiteral]] = {}
    for literal in literals:
        grouped.setdefault(literal.source_file, []).append(literal)
    return grouped


class L10nManager:
    """
    Extracts texts, assigns keys, updates the template ARB file and optionally
    rewrites the sources.
    """

    def __init__(
            self,
            config: AppConfig,
            resolver: Resolver = dart_parser.resolve,
            build_runner: BuildRunner = run_flutter_commands,
            translator: Optional[Translator] = None
    ):
        self.config = config
        self.project_path = config.project_path
        self.resolver = resolver
        self.build_runner = build_runner
        self.arb_manager = ArbManager(
            project_path=config.project_path,
            arb_dir=config.arb_dir,
            template_file=config.template_arb_file,
            template_locale=config.template_locale
        )
        if translator is None and config.translate and config.openai_client is not None:
            translator = OpenAITranslator(config.openai_client, config.model_name, config.language_codes)
        self.translator = translator

    def _build_rewriter(self, warnings: List[str]) -> SourceRewriter:
        import_statement = None
        import_path = self.config.import_path
        package_name = read_package_name(self.project_path)
        if package_name is None:
            message = "Could not determine package name from pubspec.yaml; imports were not added"
            logger.warning(message)
            warnings.append(message)
        elif import_path is None:
            message = f"Output directory '{self.config.output_dir}' is outside lib/; imports were not added"
            logger.warning(message)
            warnings.append(message)
        else:
            import_statement = build_import_statement(package_name, import_path)
        return SourceRewriter(
            reference_template=self.config.reference_template,
            import_statement=import_statement,
            import_marker=f"/{import_path or self.config.output_localization_file}"
        )

    def _replace_in_code(self, literals: List[ExtractedLiteral], result: L10nResult) -> None:
        logger.info("Replacing texts in code...")
        rewriter = self._build_rewriter(result.warnings)
        for file_path, file_literals in group_by_file(literals).items():
            replaced, errors = rewriter.replace_literals(file_path, file_literals)
            for literal in replaced:
                logger.info("Replaced in %s: \"%s\"", os.path.basename(file_path), literal.text)
            for error in errors:
                logger.error(error)
            result.errors.extend(errors)
            result.replaced_count += len(replaced)
            if not replaced:
                continue
            try:
                rewriter.ensure_import(file_path)
            except (OSError, UnicodeDecodeError) as e:
                message = f"Could not add import to {file_path}: {e}"
                logger.warning(message)
                result.warnings.append(message)

    def process_project(self, replace_in_code: bool = False, dry_run: Optional[bool] = None) -> L10nResult:
        """
        Extract texts, generate keys, update the ARB file and optionally replace texts in code.

        Args:
            replace_in_code (bool): Rewrite the sources to reference the generated keys.
            dry_run (Optional[bool]): Only report what would change. Defaults to the configured value.

        Returns:
            L10nResult: Counts, accumulated errors and warnings, and the keyed literals.

        Raises:
            ConfigurationError: If the source directory is missing or the ARB file is malformed.
        """
        dry_run = self.config.dry_run if dry_run is None else dry_run
        logger.info("Extracting texts from project: %s", self.project_path)

        literals, warnings = extract_text_from_project(self.project_path, self.config.source_dir, self.resolver)
        result = L10nResult(warnings=warnings)
        if not literals:
            logger.info("No hardcoded texts found!")
            return result

        logger.info("Found %d hardcoded text(s)", len(literals))
        keyed = assign_unique_ids(literals, self.arb_manager.get_existing_ids())
        result.extracted_count = len(keyed)
        result.literals = keyed

        logger.info("Extracted texts:")
        for literal in keyed:
            logger.info("  %s", literal)

        if dry_run:
            logger.info("Dry run mode - no changes will be made")
            return result

        logger.info("Updating ARB file...")
        self.arb_manager.add_texts_to_arb(keyed)

        if replace_in_code:
            self._replace_in_code(keyed, result)
            if result.replaced_count > 0 and self.config.run_build_commands:
                logger.info("Running Flutter commands...")
                result.warnings.extend(self.build_runner(self.project_path))

        logger.info("Summary:")
        logger.info("  - Texts extracted: %d", result.extracted_count)
        logger.info("  - Texts replaced: %d", result.replaced_count)
        if result.errors:
            logger.info("  - Errors: %d", len(result.errors))

        stats = self.arb_manager.get_statistics()
        logger.info("ARB Statistics:")
        logger.info("  - Total entries: %d", stats['total'])
        logger.info("  - With metadata: %d", stats['withMetadata'])
        return result

    async def add_locale(self, locale: str, dry_run: Optional[bool] = None) -> PropagationResult:
        """Create the ARB file for an additional locale. A dry run writes nothing."""
        propagator = LocalePropagator(
            self.arb_manager,
            translator=self.translator,
            delay_seconds=self.config.translation_delay_seconds,
            language_names=self.config.language_codes
        )
        dry_run = self.config.dry_run if dry_run is None else dry_run
        return await propagator.propagate(locale, dry_run=dry_run)
