"""Runs the Flutter build steps that regenerate localization code."""
import logging
import shutil
import subprocess
from typing import List, Optional, Sequence, Tuple

from arb_extractor.errors import ExternalToolError

logger = logging.getLogger(__name__)

FLUTTER_EXECUTABLE = 'flutter'

# Run in this order after source files were rewritten.
FLUTTER_STEPS: List[List[str]] = [
    ['clean'],
    ['pub', 'get'],
    ['gen-l10n'],
]


def run_build_command(command: str, args: Sequence[str], cwd: str) -> Tuple[int, str]:
    """
    Run an external command and wait for it to finish.

    Args:
        command (str): The executable name.
        args: The command arguments.
        cwd (str): Working directory.

    Returns:
        Tuple[int, str]: The exit code and the captured standard error.

    Raises:
        FileNotFoundError: If the executable cannot be found.
    """
    executable = shutil.which(command) or command
    result = subprocess.run(
        [executable, *args],
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        check=False
    )
    return result.returncode, result.stderr or ''


def run_flutter_commands(project_path: str, steps: Optional[List[List[str]]] = None) -> List[str]:
    """
    Run ``flutter clean``, ``flutter pub get`` and ``flutter gen-l10n``.

    Failures never abort the run: every failing step becomes a warning and the
    next step is still attempted. A missing ``flutter`` executable stops the
    sequence with a single warning.

    Returns:
        List[str]: Warning messages, empty when every step succeeded.
    """
    warnings: List[str] = []
    for args in steps if steps is not None else FLUTTER_STEPS:
        display = ' '.join([FLUTTER_EXECUTABLE, *args])
        logger.info("Running %s...", display)
        try:
            exit_code, stderr = run_build_command(FLUTTER_EXECUTABLE, args, project_path)
        except OSError as e:
            message = f"Could not run Flutter commands: {e}. Please run manually: flutter clean && flutter pub get"
            logger.warning(message)
            warnings.append(message)
            break
        if exit_code == 0:
            logger.info("%s completed", display)
            continue
        error = ExternalToolError(display, exit_code, stderr)
        logger.warning("%s", error)
        warnings.append(str(error))
    return warnings
