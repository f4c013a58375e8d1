"""Error definitions for the ARB extraction pipeline."""


class ArbExtractorError(Exception):
    """Base exception for all custom errors."""


class ConfigurationError(ArbExtractorError):
    """Raised when required project structure is missing or unreadable. Aborts the run."""


class ParseError(ArbExtractorError):
    """Raised when a Dart file cannot be resolved. The file is skipped."""

    def __init__(self, file_path: str, reason: str):
        self.file_path = file_path
        self.reason = reason
        super().__init__(f"Could not parse '{file_path}': {reason}")


class ReplacementError(ArbExtractorError):
    """Raised when a literal can no longer be found at its recorded position."""

    def __init__(self, file_path: str, text: str, reason: str = "literal not found at recorded position"):
        self.file_path = file_path
        self.text = text
        self.reason = reason
        super().__init__(f"Failed to replace in {file_path}: \"{text}\" ({reason})")


class ExternalToolError(ArbExtractorError):
    """Raised when a post-processing build command fails."""

    def __init__(self, command: str, exit_code: int, stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        detail = stderr.strip() or "no output"
        super().__init__(f"'{command}' exited with code {exit_code}: {detail}")


class TranslationError(ArbExtractorError):
    """Raised when a single text could not be translated."""
