import json
import os
import tempfile
import unittest

from arb_extractor.arb_manager import ArbManager, content_keys, load_arb_file, write_arb_file
from arb_extractor.errors import ConfigurationError
from arb_extractor.models import ExtractedLiteral


def _keyed(text, key, context_label='Text', source_file='/app/lib/home.dart'):
    return ExtractedLiteral(
        text=text,
        source_file=source_file,
        offset=0,
        length=len(text) + 2,
        line=1,
        column=1,
        context_label=context_label,
        assigned_key=key
    )


class TestArbManager(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.project = self.temp_dir.name
        self.manager = ArbManager(self.project)
        self.arb_path = os.path.join(self.project, 'lib', 'l10n', 'app_en.arb')

    def tearDown(self):
        self.temp_dir.cleanup()

    def _write_template(self, content):
        write_arb_file(self.arb_path, content)

    def _read_raw(self):
        with open(self.arb_path, 'r', encoding='utf-8') as f:
            return f.read()

    def test_existing_ids_of_missing_file_is_empty(self):
        self.assertEqual(self.manager.get_existing_ids(), set())

    def test_existing_ids_skip_metadata(self):
        self._write_template({
            '@@locale': 'en',
            'hello': 'Hello',
            '@hello': {'description': 'Greeting'},
            'bye': 'Bye'
        })
        self.assertEqual(self.manager.get_existing_ids(), {'hello', 'bye'})

    def test_merge_creates_file_with_locale_and_metadata(self):
        added = self.manager.add_texts_to_arb([_keyed('Hello World', 'helloWorld')])

        self.assertEqual(added, 1)
        content = load_arb_file(self.arb_path)
        self.assertEqual(list(content), ['@@locale', 'helloWorld', '@helloWorld'])
        self.assertEqual(content['@@locale'], 'en')
        self.assertEqual(content['helloWorld'], 'Hello World')
        self.assertEqual(content['@helloWorld'], {'description': 'Text from Text in home.dart'})

    def test_merge_is_additive_and_keeps_existing_values(self):
        self._write_template({'@@locale': 'en', 'title': 'My App', 'save': 'Save (edited)'})

        added = self.manager.add_texts_to_arb([
            _keyed('Save', 'save'),
            _keyed('Cancel', 'cancel', context_label='TextButton'),
        ])

        self.assertEqual(added, 1)
        content = load_arb_file(self.arb_path)
        self.assertEqual(list(content), ['@@locale', 'title', 'save', 'cancel', '@cancel'])
        self.assertEqual(content['save'], 'Save (edited)')
        self.assertEqual(content['@cancel']['description'], 'Text from TextButton in home.dart')

    def test_merging_same_batch_twice_keeps_key_count(self):
        batch = [_keyed('Save', 'save'), _keyed('Save', 'save2'), _keyed('Hello', 'hello')]
        self.manager.add_texts_to_arb(batch)
        once = self.manager.get_statistics()

        added = self.manager.add_texts_to_arb(batch)

        self.assertEqual(added, 0)
        self.assertEqual(self.manager.get_statistics(), once)
        self.assertEqual(once, {'total': 3, 'withMetadata': 3})

    def test_output_formatting(self):
        self.manager.merge([('cafe', 'Café', 'Text from Text in menu.dart')])
        raw = self._read_raw()
        self.assertTrue(raw.endswith('}\n'))
        self.assertIn('\n  "cafe": "Café",\n', raw)

    def test_round_trip_preserves_entries(self):
        original = {
            '@@locale': 'en',
            'greeting': 'Hi {name}',
            '@greeting': {'description': 'Greeting', 'placeholders': {'name': {'type': 'String'}}},
            'plain': 'Plain'
        }
        self._write_template(original)
        self.manager.merge([('extra', 'Extra', 'Text from Text in home.dart')])
        content = load_arb_file(self.arb_path)
        self.assertEqual({key: content[key] for key in original}, original)

    def test_merge_without_new_keys_leaves_file_untouched(self):
        hand_formatted = '{"@@locale": "en",\n    "save": "Save"}'
        os.makedirs(os.path.dirname(self.arb_path))
        with open(self.arb_path, 'w', encoding='utf-8') as f:
            f.write(hand_formatted)

        self.assertEqual(self.manager.merge([('save', 'Save', 'Text from Text in home.dart')]), 0)
        self.assertEqual(self.manager.merge([]), 0)

        self.assertEqual(self._read_raw(), hand_formatted)

    def test_empty_merge_does_not_create_template(self):
        self.assertEqual(self.manager.merge([]), 0)
        self.assertFalse(os.path.exists(self.arb_path))

    def test_statistics(self):
        self.assertEqual(self.manager.get_statistics(), {'total': 0, 'withMetadata': 0})
        self._write_template({
            '@@locale': 'en',
            'a': 'A',
            '@a': {'description': 'x'},
            'b': 'B'
        })
        self.assertEqual(self.manager.get_statistics(), {'total': 2, 'withMetadata': 1})

    def test_invalid_json_is_configuration_error(self):
        os.makedirs(os.path.dirname(self.arb_path))
        with open(self.arb_path, 'w', encoding='utf-8') as f:
            f.write('{"@@locale": "en",')
        with self.assertRaises(ConfigurationError):
            self.manager.get_existing_ids()

    def test_non_string_value_is_configuration_error(self):
        self._write_template({'@@locale': 'en', 'count': 3})
        with self.assertRaises(ConfigurationError):
            self.manager.read()

    def test_locale_file_path_follows_template_name(self):
        self.assertEqual(
            self.manager.locale_file_path('es'),
            os.path.join(self.project, 'lib', 'l10n', 'app_es.arb')
        )
        custom = ArbManager(self.project, arb_dir='assets/i18n', template_file='strings_en.arb')
        self.assertEqual(
            custom.locale_file_path('pt_BR'),
            os.path.join(self.project, 'assets', 'i18n', 'strings_pt_BR.arb')
        )

    def test_content_keys_order(self):
        self.assertEqual(content_keys({'@@locale': 'en', 'b': 'B', '@b': {}, 'a': 'A'}), ['b', 'a'])


if __name__ == '__main__':
    unittest.main()
