import json
import os
import tempfile
import unittest
from unittest.mock import AsyncMock, patch

from arb_extractor.arb_manager import ArbManager, write_arb_file
from arb_extractor.errors import ConfigurationError, TranslationError
from arb_extractor.locale_propagator import LocalePropagator

TEMPLATE = {
    '@@locale': 'en',
    'helloWorld': 'Hello World',
    '@helloWorld': {'description': 'Text from Text in home.dart'},
    'save': 'Save',
    '@save': {'description': 'Text from TextButton in home.dart'},
}


class TestLocalePropagator(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.manager = ArbManager(self.temp_dir.name)
        write_arb_file(self.manager.template_path, TEMPLATE)
        self.es_path = self.manager.locale_file_path('es')

    def tearDown(self):
        self.temp_dir.cleanup()

    def _read(self, path):
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)

    async def test_copies_texts_without_translator(self):
        result = await LocalePropagator(self.manager).propagate('es')

        self.assertTrue(result.created)
        self.assertEqual(result.total, 2)
        self.assertEqual(result.fallbacks, 2)
        content = self._read(self.es_path)
        self.assertEqual(list(content), ['@@locale', 'helloWorld', 'save'])
        self.assertEqual(content, {'@@locale': 'es', 'helloWorld': 'Hello World', 'save': 'Save'})

    async def test_translates_each_text_in_template_order(self):
        translator = AsyncMock()
        translator.translate.side_effect = ['Hola Mundo', 'Guardar']

        result = await LocalePropagator(self.manager, translator, delay_seconds=0).propagate('es')

        self.assertEqual(result.translated, 2)
        self.assertEqual(result.fallbacks, 0)
        self.assertEqual(
            [call.args for call in translator.translate.call_args_list],
            [('Hello World', 'en', 'es'), ('Save', 'en', 'es')]
        )
        self.assertEqual(self._read(self.es_path), {'@@locale': 'es', 'helloWorld': 'Hola Mundo', 'save': 'Guardar'})

    async def test_failed_translation_falls_back_to_source(self):
        translator = AsyncMock()
        translator.translate.side_effect = [TranslationError('rate limited'), '']

        result = await LocalePropagator(self.manager, translator, delay_seconds=0).propagate('es')

        self.assertTrue(result.created)
        self.assertEqual(result.fallbacks, 2)
        self.assertEqual(self._read(self.es_path), {'@@locale': 'es', 'helloWorld': 'Hello World', 'save': 'Save'})
        self.assertEqual(translator.translate.await_count, 2)

    async def test_calls_go_through_rate_limiter(self):
        translator = AsyncMock()
        translator.translate.side_effect = ['Hola Mundo', 'Guardar']

        with patch('arb_extractor.locale_propagator.AsyncLimiter') as limiter_cls:
            limiter = limiter_cls.return_value
            limiter.__aenter__ = AsyncMock(return_value=None)
            limiter.__aexit__ = AsyncMock(return_value=None)
            await LocalePropagator(self.manager, translator, delay_seconds=0.5).propagate('fr')

        limiter_cls.assert_called_once_with(max_rate=1, time_period=0.5)
        self.assertEqual(limiter.__aenter__.await_count, 2)

    async def test_existing_locale_file_is_not_overwritten(self):
        write_arb_file(self.es_path, {'@@locale': 'es', 'helloWorld': 'Hola'})
        translator = AsyncMock()

        result = await LocalePropagator(self.manager, translator).propagate('es')

        self.assertFalse(result.created)
        translator.translate.assert_not_awaited()
        self.assertEqual(self._read(self.es_path), {'@@locale': 'es', 'helloWorld': 'Hola'})

    async def test_missing_template_is_configuration_error(self):
        os.remove(self.manager.template_path)
        with self.assertRaises(ConfigurationError):
            await LocalePropagator(self.manager).propagate('es')


if __name__ == '__main__':
    unittest.main()
