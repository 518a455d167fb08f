"""Command-line classifier adapter - subprocess wrapper for an LLM CLI."""

import logging
import shlex
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "claude -p -"


class ClassifierError(RuntimeError):
    """The classification command failed, is missing, or timed out."""


class CLIClassifier:
    """
    LLM CLI subprocess adapter.

    Implements Classifier protocol. The prompt is written to the command's
    stdin and its stdout is returned untouched.
    """

    def __init__(
        self,
        command: str | list[str] = DEFAULT_COMMAND,
        cwd: Path | str | None = None,
        timeout: int = 120,
    ):
        self.command = shlex.split(command) if isinstance(command, str) else list(command)
        self.cwd = Path(cwd) if cwd else None
        self.timeout = timeout

    def generate(self, prompt: str) -> str:
        """Run the prompt. Returns complete response."""
        try:
            proc = subprocess.run(
                self.command,
                input=prompt,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise ClassifierError(
                f"Classifier command not found: {self.command[0]}. Set CLASSIFIER_COMMAND in clarity.conf"
            )
        except subprocess.TimeoutExpired:
            raise ClassifierError(f"Classifier timed out after {self.timeout}s")

        if proc.returncode != 0:
            logger.error(f"Classifier failed: {proc.stderr}")
            raise ClassifierError(f"Classifier failed: {proc.stderr.strip()}")
        return proc.stdout
