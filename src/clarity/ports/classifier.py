"""Text classification service interface."""

from typing import Protocol


class Classifier(Protocol):
    """Interface for the model that categorises a text dump."""

    def generate(self, prompt: str) -> str:
        """Run the prompt. Returns the raw, untrusted response text."""
        ...
