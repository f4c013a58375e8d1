"""Turns literal text into stable, collision-free ARB message keys."""
import hashlib
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set

from arb_extractor.models import ExtractedLiteral

ID_PREFIX = 'text'
MAX_WORDS = 5

_NON_ALPHANUMERIC = re.compile(r'[^A-Za-z0-9\s]')
_WHITESPACE = re.compile(r'\s+')


@dataclass
class UsedIdentifiers:
    """
    Identifiers taken so far in one batch.

    Seeded with the keys already present in the template ARB file so new keys
    never collide with existing entries. ``counters`` remembers the last
    numeric suffix handed out per base identifier.
    """
    identifiers: Set[str] = field(default_factory=set)
    counters: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def seeded(cls, existing: Iterable[str]) -> 'UsedIdentifiers':
        return cls(identifiers=set(existing))

    def __contains__(self, identifier: str) -> bool:
        return identifier in self.identifiers


def _fallback_id(text: str) -> str:
    digest = hashlib.sha1(text.encode('utf-8')).hexdigest()
    return f"{ID_PREFIX}{digest[:8]}"


def generate_text_id(text: str) -> str:
    """
    Convert literal text into a lowerCamelCase identifier.

    Accents are folded to their base letters and everything that is not an
    ASCII letter, digit or whitespace is dropped. At most five words
    contribute. Text with no usable words gets a content-hash identifier.

    Args:
        text (str): The literal text.

    Returns:
        str: An identifier matching ``[a-z][A-Za-z0-9]*``.
    """
    folded = ''.join(
        char for char in unicodedata.normalize('NFKD', text)
        if not unicodedata.combining(char)
    )
    cleaned = _NON_ALPHANUMERIC.sub('', folded).strip().lower()
    words = [word for word in _WHITESPACE.split(cleaned) if word]
    if not words:
        return _fallback_id(text)

    identifier = words[0] + ''.join(word[0].upper() + word[1:] for word in words[1:MAX_WORDS])
    if not identifier or identifier[0].isdigit():
        identifier = f"{ID_PREFIX}{identifier}"
    return identifier


def synthesize(text: str, used: UsedIdentifiers) -> str:
    """
    Generate a unique identifier for ``text`` and record it in ``used``.

    Collisions get a numeric suffix starting at 2 (``save``, ``save2``,
    ``save3``...). The per-base counter is kept in ``used`` so later
    collisions continue counting instead of restarting.
    """
    base_id = generate_text_id(text)
    unique_id = base_id
    if unique_id in used:
        count = used.counters.get(base_id, 1)
        while True:
            count += 1
            unique_id = f"{base_id}{count}"
            if unique_id not in used:
                break
        used.counters[base_id] = count
    used.identifiers.add(unique_id)
    return unique_id


def assign_unique_ids(literals: Iterable[ExtractedLiteral], existing_ids: Iterable[str]) -> List[ExtractedLiteral]:
    """
    Assign a key to every literal in encounter order.

    Args:
        literals: Literals without keys, in document order.
        existing_ids: Keys already present in the template ARB file.

    Returns:
        List[ExtractedLiteral]: New literal values carrying their keys.
    """
    used = UsedIdentifiers.seeded(existing_ids)
    return [literal.with_key(synthesize(literal.text, used)) for literal in literals]
