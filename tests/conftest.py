import asyncio
import pytest
import pytest_asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from models.schemas import ChannelProfile, VideoIdea
from storage.projects import ProjectStore


def completion(content):
    """Shape of a chat completion response with a single text message"""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content, audio=None))])


def audio_completion(data):
    audio = SimpleNamespace(data=data) if data is not None else None
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=None, audio=audio))])


def stream_chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


async def fragments(*parts, error=None):
    for part in parts:
        yield part
    if error is not None:
        raise error


async def wait_for(predicate, attempts=100):
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture
def sample_profile():
    return ChannelProfile.model_validate({
        "channelName": "Kurzgesagt",
        "niche": "science animation",
        "tone": ["Curious", "Optimistic"],
        "avgDuration": "10-12 minutes",
        "hookStyle": "Big question up front",
        "storytellingStyle": "Zoom from the tiny to the cosmic",
        "recurringKeywords": ["universe", "biology"],
        "audienceDemographic": "18-34, curious generalists",
        "uploadSchedule": "Monthly",
        "performanceMetrics": [
            {"name": "Pacing", "value": 70, "fullMark": 100},
            {"name": "Humor", "value": 45, "fullMark": 100},
        ],
    })


@pytest.fixture
def sample_ideas():
    return [
        VideoIdea(id="idea-1", title="What If The Sun Disappeared?", hook="Curiosity gap", predicted_ctr="High", reasoning="Cosmic stakes"),
        VideoIdea(id="idea-2", title="Your Body Is Mostly Not You", hook="Negation", predicted_ctr="Medium", reasoning="Personal angle"),
    ]


@pytest.fixture
def mock_client():
    client = Mock()
    client.analyze_channel = AsyncMock()
    client.generate_ideas = AsyncMock(return_value=[])
    client.generate_metadata = AsyncMock()
    client.synthesize_speech = AsyncMock(return_value=b"\x00\x01" * 8)
    client.stream_script = Mock(side_effect=lambda request: fragments("Hello ", "world"))
    return client


@pytest_asyncio.fixture
async def project_store(tmp_path):
    store = ProjectStore(database_url=f"sqlite+aiosqlite:///{tmp_path}/projects.sqlite3")
    yield store
    await store.close()
