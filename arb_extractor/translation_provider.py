"""Machine translation of ARB messages through the OpenAI chat completions API."""
import logging
import re
import uuid
from typing import Dict, Optional, Protocol, Tuple

from openai import AsyncOpenAI, OpenAIError
from openai.types.chat import (
    ChatCompletionSystemMessageParam,
    ChatCompletionUserMessageParam
)

from arb_extractor.errors import TranslationError

logger = logging.getLogger(__name__)

LANGUAGE_NAMES: Dict[str, str] = {
    'ar': 'Arabic',
    'de': 'German',
    'en': 'English',
    'es': 'Spanish',
    'fr': 'French',
    'hi': 'Hindi',
    'it': 'Italian',
    'ja': 'Japanese',
    'ko': 'Korean',
    'pt': 'Portuguese',
    'ru': 'Russian',
    'zh': 'Chinese',
    'nl': 'Dutch',
    'tr': 'Turkish',
    'pl': 'Polish',
    'vi': 'Vietnamese',
    'th': 'Thai',
    'id': 'Indonesian',
    'sv': 'Swedish',
    'da': 'Danish',
    'fi': 'Finnish',
    'no': 'Norwegian',
    'cs': 'Czech',
    'ro': 'Romanian',
    'el': 'Greek',
    'he': 'Hebrew',
    'uk': 'Ukrainian',
    'bn': 'Bengali',
    'ta': 'Tamil',
    'te': 'Telugu',
    'fa': 'Persian',
    'ur': 'Urdu',
}


class Translator(Protocol):
    async def translate(self, text: str, from_locale: str, to_locale: str) -> str:
        """Translate ``text``; raise TranslationError on failure."""


def language_name(locale: str, language_names: Optional[Dict[str, str]] = None) -> str:
    """
    Get a human-readable language name for a locale code.

    Region suffixes are ignored (``pt_BR`` -> Portuguese). Unknown codes are
    returned upper-cased.
    """
    names = language_names if language_names is not None else LANGUAGE_NAMES
    if locale in names:
        return names[locale]
    base = re.split(r'[_-]', locale)[0]
    return names.get(base, locale.upper())


# Innermost ICU brace groups (``{count}``, plural branches) and inline tags
# such as ``<b>`` reach the model as opaque tokens.
_PROTECTED = re.compile(r'<[^<>]+>|\{[^{}]+\}')


def extract_placeholders(text: str) -> Tuple[str, Dict[str, str]]:
    """
    Swap the ICU arguments and tags of an ARB message for ``__PH_<hex>__`` tokens.

    Returns:
        Tuple[str, Dict[str, str]]: The message to send for translation and a
        token -> original mapping for :func:`restore_placeholders`.

    Raises:
        ValueError: If ``text`` is not a string (a non-string ARB value).
    """
    if not isinstance(text, str):
        raise ValueError("Input text must be a string.")

    mapping: Dict[str, str] = {}

    def protect(match: 're.Match[str]') -> str:
        token = f"__PH_{uuid.uuid4().hex}__"
        mapping[token] = match.group(0)
        return token

    return _PROTECTED.sub(protect, text), mapping


def restore_placeholders(text: str, placeholder_mapping: Dict[str, str]) -> str:
    """Put the original ICU arguments and tags back in place of their tokens."""
    for token, placeholder in placeholder_mapping.items():
        text = text.replace(token, placeholder)
    return text


def _wrapped_in(text: str, opening: str, closing: str) -> bool:
    return len(text) >= 2 and text.startswith(opening) and text.endswith(closing)


def clean_translated_text(translated_text: str, original_text: str) -> str:
    """
    Strip one pair of quotes or square brackets the model put around a
    translated ARB message, unless the source message is wrapped the same way.
    """
    for opening, closing in (('"', '"'), ('[', ']')):
        if _wrapped_in(translated_text, opening, closing) and not _wrapped_in(original_text, opening, closing):
            translated_text = translated_text[1:-1]
    return translated_text


SYSTEM_PROMPT = """
You are an expert translator specializing in mobile app localization. Translate the user interface text you are given from {source_language} to {target_language}.

**Instructions**:
- **Do not translate or modify placeholder tokens**: Any text enclosed within double underscores `__` (e.g., `__PH_abc123__`) should remain exactly as is.
- **Keep it short**: The text is shown on buttons, titles, labels and dialogs of a Flutter app. Use typical software terminology.
- **Do not add** any additional characters or punctuation (e.g., no square brackets, quotation marks, etc.).
- **Provide only** the translated text.
"""


class OpenAITranslator:
    """Translates single messages with one chat completion request each. No retries."""

    def __init__(
            self,
            client: AsyncOpenAI,
            model_name: str,
            language_names: Optional[Dict[str, str]] = None,
            timeout: float = 60.0
    ):
        self.client = client
        self.model_name = model_name
        self.language_names = language_names
        self.timeout = timeout

    async def translate(self, text: str, from_locale: str, to_locale: str) -> str:
        processed_text, placeholder_mapping = extract_placeholders(text)
        system_prompt = SYSTEM_PROMPT.format(
            source_language=language_name(from_locale, self.language_names),
            target_language=language_name(to_locale, self.language_names)
        )
        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    ChatCompletionSystemMessageParam(role="system", content=system_prompt),
                    ChatCompletionUserMessageParam(role="user", content=processed_text)
                ],
                temperature=0.3,
                timeout=self.timeout,
            )
        except OpenAIError as api_exc:
            raise TranslationError(f"{api_exc.__class__.__name__} - {api_exc}") from api_exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise TranslationError("Empty response from the translation model")

        translated_text = restore_placeholders(content.strip(), placeholder_mapping)
        translated_text = clean_translated_text(translated_text, text)
        logger.debug("Translated '%s' -> '%s'", text, translated_text)
        return translated_text
