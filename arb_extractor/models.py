"""Data structures shared across the extraction pipeline."""
import os
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List


@dataclass(frozen=True)
class ExtractedLiteral:
    """A string literal found at a specific position in a Dart source file."""
    text: str
    source_file: str
    offset: int
    length: int
    line: int
    column: int
    context_label: str
    assigned_key: str = ''

    def with_key(self, key: str) -> 'ExtractedLiteral':
        return replace(self, assigned_key=key)

    @property
    def description(self) -> str:
        """Provenance text stored in the ARB metadata entry."""
        return f"Text from {self.context_label} in {os.path.basename(self.source_file)}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        return f'{self.source_file}:{self.line}:{self.column} - [{self.context_label}] "{self.text}" -> {self.assigned_key}'


@dataclass
class L10nResult:
    """Outcome of one extraction run."""
    extracted_count: int = 0
    replaced_count: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    literals: List[ExtractedLiteral] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def is_success(self) -> bool:
        return not self.has_errors and self.extracted_count > 0


@dataclass
class PropagationResult:
    """Outcome of creating a new locale file."""
    locale: str
    file_path: str
    created: bool = False
    total: int = 0
    translated: int = 0
    fallbacks: int = 0


@dataclass
class InitializationResult:
    """Outcome of bootstrapping a project for localization."""
    success: bool
    results: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
