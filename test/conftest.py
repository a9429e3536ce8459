"""
Pytest configuration and shared fixtures for ruletree tests.

Path setup is handled by pyproject.toml [tool.pytest.ini_options] pythonpath.
"""

from typing import List

import pytest

from ruletree.rule_loader import sample_config
from ruletree.rule_set_store import RuleSetStore


KNOWN_TYPES = ["TYPE_A_RULE", "TYPE_B_RULE", "TYPE_C_RULE"]


class ScriptedConfirm:
    """Confirmation handler that answers with a fixed reply and records prompts."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.prompts: List[str] = []

    def __call__(self, message: str) -> bool:
        self.prompts.append(message)
        return self.answer


class NotifyRecorder:
    """Notification handler that records every message."""

    def __init__(self) -> None:
        self.messages: List[str] = []

    def __call__(self, message: str) -> None:
        self.messages.append(message)

    @property
    def last(self) -> str:
        return self.messages[-1] if self.messages else ""


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_data():
    """Fresh copy of the two-type demo configuration."""
    return sample_config()


@pytest.fixture
def confirm():
    return ScriptedConfirm(answer=True)


@pytest.fixture
def notify():
    return NotifyRecorder()


@pytest.fixture
def store(sample_data, confirm, notify):
    """Store initialized with the demo data and three known types."""
    store = RuleSetStore(confirm=confirm, notify=notify)
    store.initialize(sample_data, KNOWN_TYPES)
    return store
