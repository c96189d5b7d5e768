"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures and in-memory
collaborator fakes for all tests.
"""
import pytest
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.practice.collaborators import (  # noqa: E402
    DescriptionGenerator,
    DetailExtractor,
    Evaluator,
    ImageSynthesizer,
    PromptComposer,
)
from src.practice.lifecycle import SessionLifecycleManager  # noqa: E402
from src.practice.models import Difficulty, Session, SessionParams  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-data"

KEY_DETAILS = [
    "red ball on the grass",
    "smiling girl",
    "blue sky",
    "yellow sun",
    "green tree",
]


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (fake collaborators)")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


# =============================================================================
# Collaborator fakes
# =============================================================================


class FakeComposer(PromptComposer):
    def __init__(self, prompt: str = "A calm park scene with a red ball", fail: bool = False):
        self.prompt = prompt
        self.fail = fail
        self.calls = []

    async def compose(self, difficulty, age, autism_level, topic_focus, treatment_plan, image_style):
        self.calls.append(
            {
                "difficulty": difficulty,
                "age": age,
                "autism_level": autism_level,
                "topic_focus": topic_focus,
                "treatment_plan": treatment_plan,
                "image_style": image_style,
            }
        )
        if self.fail:
            raise RuntimeError("composer down")
        return f"{self.prompt} ({difficulty.value})"


class FakeSynthesizer(ImageSynthesizer):
    def __init__(self, image: bytes = PNG_BYTES, fail: bool = False):
        self.image = image
        self.fail = fail
        self.calls = []

    async def synthesize(self, prompt):
        self.calls.append(prompt)
        if self.fail:
            raise RuntimeError("image endpoint returned 503")
        return self.image


class FakeDescriber(DescriptionGenerator):
    def __init__(self, description: str = "A girl plays with a red ball in a park.", fail: bool = False):
        self.description = description
        self.fail = fail
        self.calls = []

    async def describe(self, image, prompt, difficulty, topic_focus):
        self.calls.append((image, prompt, difficulty, topic_focus))
        if self.fail:
            raise RuntimeError("description failed")
        return self.description


class FakeExtractor(DetailExtractor):
    def __init__(self, details=None, fail: bool = False):
        self.details = list(details if details is not None else KEY_DETAILS)
        self.fail = fail
        self.calls = []

    async def extract(self, image, prompt, topic_focus):
        self.calls.append((image, prompt, topic_focus))
        if self.fail:
            raise RuntimeError("detail extraction failed")
        return list(self.details)


class ScriptedEvaluator(Evaluator):
    """Replays a fixed list of replies (Verdict, raw text or an exception)."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    async def evaluate(self, utterance, session):
        self.calls.append((utterance, session))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def key_details():
    return list(KEY_DETAILS)


@pytest.fixture
def params():
    """Learner parameters: 3 attempts, 70% threshold."""
    return SessionParams(
        age="5",
        autism_level="Level 1",
        topic_focus="playground",
        treatment_plan="",
        attempt_limit=3,
        details_threshold=70,
        image_style="Cartoon",
    )


@pytest.fixture
def composer():
    return FakeComposer()


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def describer():
    return FakeDescriber()


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def lifecycle(composer, synthesizer, describer, extractor):
    return SessionLifecycleManager(composer, synthesizer, describer, extractor)


@pytest.fixture
def active_session():
    """A session with an image and five key details, nothing identified."""
    return Session(
        prompt="A calm park scene with a red ball",
        image=PNG_BYTES,
        description="A girl plays with a red ball in a park.",
        topic_focus="playground",
        key_details=tuple(KEY_DETAILS),
        difficulty=Difficulty.SIMPLE,
        age="5",
        autism_level="Level 1",
        attempt_limit=3,
        details_threshold=0.7,
        image_style="Cartoon",
    )
