import os

import pytest

from arb_extractor.dart_parser import parse_dart_source
from arb_extractor.errors import ConfigurationError
from arb_extractor.text_extractor import (
    extract_text_from_project,
    extract_text_from_unit,
    find_dart_files,
    is_technical_string,
    is_translatable
)


def _extract(source):
    return extract_text_from_unit(parse_dart_source(source, '/app/lib/home.dart'))


class TestFilters:
    @pytest.mark.parametrize("text", [
        "https://example.com",
        "http://example.com",
        "www.example.com",
        "/home/settings",
        "12345",
        "API_KEY",
        "Loaded %s items",
        "Count %d",
        "Total ${count}",
        "OK",
        "123",
    ])
    def test_technical_strings_are_rejected(self, text):
        assert is_technical_string(text)
        assert not is_translatable(text)

    def test_short_strings_are_rejected(self):
        assert not is_translatable("")
        assert not is_translatable("A")

    @pytest.mark.parametrize("text", ["Hello World", "Sign In", "Save 20%"])
    def test_ui_text_is_accepted(self, text):
        assert is_translatable(text)


class TestExtractTextFromUnit:
    def test_positional_and_named_arguments(self):
        source = (
            "Widget build(BuildContext context) => Scaffold(\n"
            "  appBar: AppBar(title: Text('Settings')),\n"
            "  body: TextField(decoration: InputDecoration(hintText: 'Search', labelText: 'Query')),\n"
            "  floatingActionButton: FloatingActionButton(tooltip: 'Add item', onPressed: add),\n"
            ");\n"
        )
        literals = _extract(source)
        assert [(literal.text, literal.context_label) for literal in literals] == [
            ('Settings', 'Text'),
            ('Search', 'InputDecoration.hintText'),
            ('Query', 'InputDecoration.labelText'),
            ('Add item', 'FloatingActionButton.tooltip'),
        ]
        assert all(literal.assigned_key == '' for literal in literals)

    def test_positions_and_spans(self):
        source = "void f() {\n  Text(\"Hello World\");\n}\n"
        [literal] = _extract(source)
        assert (literal.line, literal.column) == (2, 8)
        assert source[literal.offset:literal.offset + literal.length] == '"Hello World"'

    def test_skipped_shapes(self):
        source = (
            "Widget f() => Column(children: [\n"
            "  Text('Hi $name'),\n"
            "  Text('Hello ' 'there'),\n"
            "  Text(label),\n"
            "  Padding(child: Text('Ok')),\n"
            "  Container(key: Key('home_key')),\n"
            "  Text('API_KEY'),\n"
            "  Text('x'),\n"
            "  m.Text('Prefixed'),\n"
            "  ListTile(subtitle: 'Not a text parameter'),\n"
            "  Chip(label: Text('Tag')),\n"
            "]);\n"
        )
        literals = _extract(source)
        assert [literal.text for literal in literals] == ['Ok', 'Tag']

    def test_named_constructor_counts_as_widget(self):
        [literal] = _extract("final b = ElevatedButton.icon(label: 'Upload', icon: icon, onPressed: f);\n")
        assert literal.context_label == 'ElevatedButton.label'

    def test_unescaped_value_is_extracted(self):
        [literal] = _extract(r"final w = Text('Don\'t panic');")
        assert literal.text == "Don't panic"


class TestExtractTextFromProject:
    def test_walks_lib_in_sorted_order(self, flutter_project, dart_widget):
        flutter_project.write_dart('b_page.dart', dart_widget("Text('Second page')"))
        flutter_project.write_dart('a/a_page.dart', dart_widget("Text('First page')"))
        flutter_project.write_dart('notes.txt', "Text('Not dart')")

        literals, warnings = extract_text_from_project(flutter_project.root)

        assert [literal.text for literal in literals] == ['First page', 'Second page']
        assert warnings == []

    def test_unparseable_file_becomes_warning(self, flutter_project, dart_widget):
        flutter_project.write_dart('good.dart', dart_widget("Text('Works')"))
        flutter_project.write_dart('bad.dart', "void f() { Text('Broken'; }")

        literals, warnings = extract_text_from_project(flutter_project.root)

        assert [literal.text for literal in literals] == ['Works']
        assert len(warnings) == 1
        assert 'bad.dart' in warnings[0]

    def test_missing_source_directory_is_fatal(self, tmp_path):
        with pytest.raises(ConfigurationError):
            extract_text_from_project(str(tmp_path))

    def test_extraction_is_repeatable(self, flutter_project, dart_widget):
        flutter_project.write_dart('home.dart', dart_widget("Column(children: [Text('Save'), Text('Save')])"))

        first, _ = extract_text_from_project(flutter_project.root)
        second, _ = extract_text_from_project(flutter_project.root)

        assert first == second
        assert len(first) == 2

    def test_custom_resolver_is_used(self, flutter_project):
        flutter_project.write_dart('home.dart', "ignored")
        calls = []

        def resolver(file_path):
            calls.append(file_path)
            return parse_dart_source("final w = Text('From resolver');\n", file_path)

        literals, _ = extract_text_from_project(flutter_project.root, resolver=resolver)

        assert calls == [os.path.join(flutter_project.root, 'lib', 'home.dart')]
        assert literals[0].text == 'From resolver'


def test_find_dart_files_only_returns_dart(tmp_path):
    (tmp_path / 'x.dart').write_text('', encoding='utf-8')
    (tmp_path / 'y.md').write_text('', encoding='utf-8')
    assert find_dart_files(str(tmp_path)) == [os.path.join(str(tmp_path), 'x.dart')]
