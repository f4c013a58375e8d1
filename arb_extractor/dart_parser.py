"""
Dart syntax provider backed by tree-sitter.

A compilation unit is parsed with the Dart grammar shipped in
``tree-sitter-language-pack``. The tree is walked for argument lists, which
gives every ``Name(...)`` / ``Name.ctor(...)`` / ``const Name(...)`` call with
its named and positional arguments and the exact span of each string literal.
Spans are reported as character offsets into the decoded source.
"""
import bisect
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Iterator, List, Optional, Tuple

from tree_sitter import Node, Parser, Tree
from tree_sitter_language_pack import get_parser

from arb_extractor.errors import ParseError

_SIMPLE_ESCAPES = {'n': '\n', 'r': '\r', 't': '\t', 'b': '\b', 'f': '\f', 'v': '\v'}
_ESCAPE = re.compile(r'\\(?:x([0-9A-Fa-f]{2})|u\{([0-9A-Fa-f]{1,6})\}|u([0-9A-Fa-f]{4})|(.))', re.DOTALL)
_MULTILINE_LEADING_BLANK = re.compile(r'[ \t]*\r?\n')
_STRING_START = re.compile(r'''(r?)('{3}|"{3}|'|")''')
_MEMBER_ACCESS = re.compile(r'\.\s*([A-Za-z_$][\w$]*)')
# Node types that construct an object from a type name followed by arguments.
_CONSTRUCTION_NODES = {'const_object_expression', 'new_expression', 'constructor_invocation'}
_NAME_NODES = {'identifier', 'type_identifier'}
_COMMENT_NODES = {'comment', 'documentation_comment'}


@dataclass
class StringLiteral:
    value: str
    offset: int
    end: int
    is_raw: bool = False
    is_interpolated: bool = False

    @property
    def length(self) -> int:
        return self.end - self.offset


@dataclass
class Argument:
    name: Optional[str]
    offset: int
    end: int
    # Set only when the value is exactly one string without interpolation.
    string_literal: Optional[StringLiteral] = None


@dataclass
class CallSite:
    callee: str
    type_name: Optional[str]
    offset: int
    arguments: List[Argument] = field(default_factory=list)


@dataclass
class DartUnit:
    path: str
    source: str
    call_sites: List[CallSite]
    line_starts: List[int]

    def location(self, offset: int) -> Tuple[int, int]:
        """Return the 1-based (line, column) of a character offset."""
        line_index = bisect.bisect_right(self.line_starts, offset) - 1
        return line_index + 1, offset - self.line_starts[line_index] + 1


@lru_cache(maxsize=None)
def _dart_parser() -> Parser:
    return get_parser('dart')


def _encode(source: str) -> bytes:
    # A byte order mark is not part of the grammar; a space keeps offsets aligned.
    if source.startswith('\ufeff'):
        source = ' ' + source[1:]
    return source.encode('utf-8')


def parse_tree(source: str) -> Tuple[Tree, bytes]:
    """Parse Dart source text and return the tree with the bytes it was built from."""
    source_bytes = _encode(source)
    return _dart_parser().parse(source_bytes), source_bytes


def _char_offsets(source: str, source_bytes: bytes) -> Callable[[int], int]:
    """Build a converter from tree-sitter byte offsets to character offsets."""
    if len(source_bytes) == len(source):
        return lambda byte_offset: byte_offset
    return lambda byte_offset: len(source_bytes[:byte_offset].decode('utf-8'))


def _node_text(node: Node, source_bytes: bytes) -> str:
    return source_bytes[node.start_byte:node.end_byte].decode('utf-8')


def _walk(node: Node) -> Iterator[Node]:
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def _decode_escape(match: 're.Match[str]') -> str:
    hex_byte, braced, fixed, other = match.groups()
    if hex_byte or braced or fixed:
        return chr(int(hex_byte or braced or fixed, 16))
    return _SIMPLE_ESCAPES.get(other, other)


def decode_string(text: str) -> Optional[Tuple[str, bool]]:
    """
    Decode the text of a single Dart string literal without interpolation.

    Args:
        text (str): The literal as written, including prefix and quotes.

    Returns:
        Optional[Tuple[str, bool]]: The value and whether the literal is raw,
        or None if the text holds more than one adjacent string.
    """
    start = _STRING_START.match(text)
    if start is None:
        return None
    is_raw = bool(start.group(1))
    delimiter = start.group(2)
    body_start = start.end()
    if len(delimiter) == 3:
        blank = _MULTILINE_LEADING_BLANK.match(text, body_start)
        if blank:
            body_start = blank.end()

    i = body_start
    while i < len(text):
        if text.startswith(delimiter, i):
            break
        i += 2 if text[i] == '\\' and not is_raw else 1
    if i + len(delimiter) != len(text):
        return None

    body = text[body_start:i]
    if is_raw:
        return body, True
    return _ESCAPE.sub(_decode_escape, body), False


def _string_literal(node: Node, source_bytes: bytes, char_offset: Callable[[int], int]) -> Optional[StringLiteral]:
    offset = char_offset(node.start_byte)
    end = char_offset(node.end_byte)
    text = _node_text(node, source_bytes)
    if any(child.type == 'template_substitution' for child in _walk(node)):
        return StringLiteral(value=text, offset=offset, end=end, is_interpolated=True)
    decoded = decode_string(text)
    if decoded is None:
        return None
    value, is_raw = decoded
    return StringLiteral(value=value, offset=offset, end=end, is_raw=is_raw)


def _argument(node: Node, source_bytes: bytes, char_offset: Callable[[int], int]) -> Argument:
    name = None
    values = [child for child in node.named_children if child.type not in _COMMENT_NODES]
    if node.type == 'named_argument':
        label = values.pop(0)
        name = _node_text(label, source_bytes).rstrip().rstrip(':').rstrip()
    elif node.type != 'argument':
        values = [node]

    literal = None
    if len(values) == 1 and values[0].type == 'string_literal':
        literal = _string_literal(values[0], source_bytes, char_offset)
        if literal is not None and literal.is_interpolated:
            literal = None
    return Argument(
        name=name,
        offset=char_offset(node.start_byte),
        end=char_offset(node.end_byte),
        string_literal=literal
    )


def _member_name(selector: Node, source_bytes: bytes) -> Optional[str]:
    """Return the name of a ``.name`` selector, or None for any other selector."""
    match = _MEMBER_ACCESS.fullmatch(_node_text(selector, source_bytes))
    return match.group(1) if match else None


def _callee(arguments: Node, source_bytes: bytes) -> Optional[Tuple[str, Node]]:
    """
    Find the dotted name called with ``arguments`` and the node it starts at.

    Member calls on an expression result (``foo().bar(``, ``..add(``) and
    annotations have no callee name.
    """
    parent = arguments.parent
    if parent is None:
        return None

    if parent.type in _CONSTRUCTION_NODES:
        names = []
        for child in parent.children:
            if child.start_byte >= arguments.start_byte:
                break
            if child.type in _NAME_NODES:
                names.append(child)
        if not names:
            return None
        return '.'.join(_node_text(name, source_bytes) for name in names), names[0]

    if parent.type != 'argument_part' or parent.parent is None or parent.parent.type != 'selector':
        return None
    parts: List[str] = []
    sibling = parent.parent.prev_sibling
    while sibling is not None and sibling.type == 'selector':
        name = _member_name(sibling, source_bytes)
        if name is None:
            return None
        parts.insert(0, name)
        sibling = sibling.prev_sibling
    if sibling is None or sibling.type not in _NAME_NODES:
        return None
    parts.insert(0, _node_text(sibling, source_bytes))
    return '.'.join(parts), sibling


def constructed_type_name(callee: str) -> Optional[str]:
    """
    Derive the constructed type from a callee name.

    ``Text`` and ``Text.rich`` construct ``Text``; ``material.Text`` keeps its
    import prefix; a callee without an UpperCamelCase segment is a plain
    function or method call.
    """
    parts = callee.split('.')
    for index, part in enumerate(parts):
        if part.lstrip('_$')[:1].isupper():
            return '.'.join(parts[:index + 1])
    return None


def collect_call_sites(tree: Tree, source: str, source_bytes: bytes) -> List[CallSite]:
    """
    Collect every call site with its arguments.

    Call sites are returned in the order their callee appears in the source.
    """
    char_offset = _char_offsets(source, source_bytes)
    call_sites: List[CallSite] = []
    for node in _walk(tree.root_node):
        if node.type != 'arguments':
            continue
        callee = _callee(node, source_bytes)
        if callee is None:
            continue
        name, start = callee
        call = CallSite(callee=name, type_name=constructed_type_name(name), offset=char_offset(start.start_byte))
        for child in node.named_children:
            if child.type not in _COMMENT_NODES:
                call.arguments.append(_argument(child, source_bytes, char_offset))
        call_sites.append(call)
    call_sites.sort(key=lambda call: call.offset)
    return call_sites


def string_literal_at(source: str, offset: int, end: int) -> Optional[StringLiteral]:
    """
    Re-parse ``source`` and return the string literal spanning exactly
    ``[offset, end)``, or None if no single literal sits there.
    """
    tree, source_bytes = parse_tree(source)
    start_byte = len(_encode(source[:offset]))
    end_byte = start_byte + len(source[offset:end].encode('utf-8'))
    node = tree.root_node.descendant_for_byte_range(start_byte, end_byte)
    while node is not None and node.type != 'string_literal' and \
            node.start_byte == start_byte and node.end_byte == end_byte:
        node = node.parent
    if node is None or node.type != 'string_literal':
        return None
    if node.start_byte != start_byte or node.end_byte != end_byte:
        return None
    return _string_literal(node, source_bytes, _char_offsets(source, source_bytes))


def _first_error(node: Node) -> Optional[Node]:
    for current in _walk(node):
        if current.type == 'ERROR' or current.is_missing:
            return current
    return None


def _line_starts(source: str) -> List[int]:
    starts = [0]
    for match in re.finditer('\n', source):
        starts.append(match.end())
    return starts


def parse_dart_source(source: str, path: str = '<string>') -> DartUnit:
    """
    Parse Dart source text into a DartUnit.

    Raises:
        ParseError: If the grammar reports a syntax error anywhere in the unit.
    """
    tree, source_bytes = parse_tree(source)
    if tree.root_node.has_error:
        error = _first_error(tree.root_node) or tree.root_node
        line = error.start_point[0] + 1
        if error.is_missing:
            raise ParseError(path, f"line {line}: missing '{error.type}'")
        raise ParseError(path, f"line {line}: unexpected syntax")
    return DartUnit(
        path=path,
        source=source,
        call_sites=collect_call_sites(tree, source, source_bytes),
        line_starts=_line_starts(source)
    )


def resolve(file_path: str) -> DartUnit:
    """
    Read and parse one Dart file.

    Args:
        file_path (str): Path to the ``.dart`` file.

    Returns:
        DartUnit: The parsed unit with positions.

    Raises:
        ParseError: If the file cannot be read as UTF-8 or is not valid Dart.
    """
    try:
        with open(file_path, 'r', encoding='utf-8', newline='') as f:
            source = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(file_path, str(e)) from e
    return parse_dart_source(source, file_path)
