"""Tests for the command-line classifier adapter."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from clarity.adapters.cli_classifier import CLIClassifier, ClassifierError


class TestCLIClassifier:
    @patch("clarity.adapters.cli_classifier.subprocess.run")
    def test_prompt_on_stdin(self, mock_run, tmp_path):
        mock_run.return_value = MagicMock(returncode=0, stdout='{"entries": []}', stderr="")
        classifier = CLIClassifier(command="claude -p -", cwd=tmp_path, timeout=5)

        assert classifier.generate("the prompt") == '{"entries": []}'

        args, kwargs = mock_run.call_args
        assert args[0] == ["claude", "-p", "-"]
        assert kwargs["input"] == "the prompt"
        assert kwargs["cwd"] == tmp_path
        assert kwargs["timeout"] == 5

    def test_accepts_argument_list(self):
        assert CLIClassifier(command=["llm", "--no-stream"]).command == ["llm", "--no-stream"]

    @patch("clarity.adapters.cli_classifier.subprocess.run")
    def test_nonzero_exit(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="rate limited\n")
        with pytest.raises(ClassifierError, match="rate limited"):
            CLIClassifier().generate("x")

    @patch("clarity.adapters.cli_classifier.subprocess.run")
    def test_missing_command(self, mock_run):
        mock_run.side_effect = FileNotFoundError()
        with pytest.raises(ClassifierError, match="not found"):
            CLIClassifier(command="nonexistent-llm").generate("x")

    @patch("clarity.adapters.cli_classifier.subprocess.run")
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="claude", timeout=5)
        with pytest.raises(ClassifierError, match="timed out"):
            CLIClassifier(timeout=5).generate("x")
