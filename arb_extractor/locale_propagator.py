"""Creates ARB files for new locales from the template's key set."""
import logging
import os
from typing import Any, Dict, Optional

from aiolimiter import AsyncLimiter
from tqdm.asyncio import tqdm

from arb_extractor.arb_manager import LOCALE_KEY, ArbManager, content_keys, load_arb_file, write_arb_file
from arb_extractor.errors import ConfigurationError, TranslationError
from arb_extractor.models import PropagationResult
from arb_extractor.translation_provider import LANGUAGE_NAMES, Translator, language_name

logger = logging.getLogger(__name__)


class LocalePropagator:
    """
    Clones the template ARB key set into a new locale file.

    With a translator every message is translated one at a time, spaced by
    ``delay_seconds``. A failed translation falls back to the template text so
    the new file always contains every key.
    """

    def __init__(
            self,
            arb_manager: ArbManager,
            translator: Optional[Translator] = None,
            delay_seconds: float = 0.1,
            language_names: Optional[Dict[str, str]] = None
    ):
        self.arb_manager = arb_manager
        self.translator = translator
        self.delay_seconds = delay_seconds
        self.language_names = language_names if language_names is not None else LANGUAGE_NAMES

    def _rate_limiter(self) -> Optional[AsyncLimiter]:
        if self.delay_seconds <= 0:
            return None
        return AsyncLimiter(max_rate=1, time_period=self.delay_seconds)

    async def _translate_one(
            self,
            text: str,
            from_locale: str,
            to_locale: str,
            rate_limiter: Optional[AsyncLimiter]
    ) -> Optional[str]:
        try:
            if rate_limiter is None:
                translated = await self.translator.translate(text, from_locale, to_locale)
            else:
                async with rate_limiter:
                    translated = await self.translator.translate(text, from_locale, to_locale)
        except TranslationError as e:
            logger.warning("Could not translate '%s': %s", text, e)
            return None
        if not translated:
            logger.warning("Could not translate '%s': empty translation", text)
            return None
        return translated

    async def propagate(self, locale_code: str, dry_run: bool = False) -> PropagationResult:
        """
        Create the ARB file for ``locale_code``.

        Args:
            locale_code (str): The target locale, e.g. ``es`` or ``pt_BR``.
            dry_run (bool): Only report the file that would be created.

        Returns:
            PropagationResult: ``created`` is False when the locale file already existed.

        Raises:
            ConfigurationError: If the template ARB file does not exist.
        """
        target_path = self.arb_manager.locale_file_path(locale_code)
        result = PropagationResult(locale=locale_code, file_path=target_path)

        if os.path.exists(target_path):
            logger.warning("Locale file already exists: %s", target_path)
            return result

        if not self.arb_manager.exists():
            raise ConfigurationError(f"Template file not found: {self.arb_manager.template_path}")

        template = load_arb_file(self.arb_manager.template_path)
        source_locale = template.get(LOCALE_KEY, self.arb_manager.template_locale)
        keys = content_keys(template)
        result.total = len(keys)
        if dry_run:
            logger.info("Dry run mode - would create %s with %d text(s)", target_path, len(keys))
            return result

        new_content: Dict[str, Any] = {LOCALE_KEY: locale_code}
        if self.translator is None:
            logger.info("No translator configured, copying %d text(s) for '%s'", len(keys), locale_code)
            for key in keys:
                new_content[key] = template[key]
            result.fallbacks = len(keys)
        else:
            logger.info(
                "Translating %d text(s) to %s...",
                len(keys), language_name(locale_code, self.language_names)
            )
            rate_limiter = self._rate_limiter()
            for key in tqdm(keys, desc=f"Translating to {locale_code}", unit="text"):
                original_text = template[key]
                translated = await self._translate_one(original_text, source_locale, locale_code, rate_limiter)
                if translated is None:
                    new_content[key] = original_text
                    result.fallbacks += 1
                else:
                    new_content[key] = translated
                    result.translated += 1

        write_arb_file(target_path, new_content)
        result.created = True
        logger.info("Created locale file: %s", target_path)
        if self.translator is not None:
            logger.info("Translated %d/%d texts", result.translated, result.total)
        return result
