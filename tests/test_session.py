import asyncio
import pytest
from unittest.mock import AsyncMock
from conftest import fragments, wait_for
from models.errors import MalformedResponseError
from models.schemas import VideoIdea, VideoMetadata
from nlp.parsing import ANALYSIS_ERROR_MESSAGE
from nlp.prompts import ScriptLength
from nlp.writer import ProfileScriptRequest, ReferenceScriptRequest
from orchestrator.audio import AudioPipeline
from orchestrator.session import REGENERATE_UNAVAILABLE, AppStep, StudioController
from orchestrator.streaming import StreamState


@pytest.fixture
def controller(mock_client, project_store):
    return StudioController(client=mock_client, store=project_store)


@pytest.fixture
def analyzed(controller, sample_profile, sample_ideas):
    controller.session.profile = sample_profile
    controller.session.ideas = list(sample_ideas)
    controller.session.step = AppStep.IDEATION
    return controller


class TestAnalysis:
    @pytest.mark.asyncio
    async def test_analyze_success(self, controller, mock_client, sample_profile):
        mock_client.analyze_channel.return_value = sample_profile

        profile = await controller.analyze("@kurzgesagt")

        assert profile == sample_profile
        assert controller.session.step is AppStep.DASHBOARD
        assert controller.session.notice is None
        assert not controller.session.is_loading

    @pytest.mark.asyncio
    async def test_malformed_analysis_returns_to_input(self, controller, mock_client):
        mock_client.analyze_channel.side_effect = MalformedResponseError(ANALYSIS_ERROR_MESSAGE)

        assert await controller.analyze("@nobody") is None
        assert controller.session.step is AppStep.INPUT
        assert controller.session.notice.message == ANALYSIS_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_failed_reanalysis_keeps_previous_step(self, analyzed, mock_client, sample_profile, sample_ideas):
        mock_client.analyze_channel.side_effect = ConnectionError("dns")

        await analyzed.analyze("@other")

        assert analyzed.session.step is AppStep.IDEATION
        assert analyzed.session.profile == sample_profile
        assert analyzed.session.ideas == sample_ideas
        assert analyzed.session.notice is not None

    @pytest.mark.asyncio
    async def test_unexpected_failure_gets_generic_notice(self, controller, mock_client):
        mock_client.analyze_channel.side_effect = ConnectionError("dns")

        await controller.analyze("@nobody")

        assert controller.session.notice.message == "Could not analyze channel. Please try again."

    @pytest.mark.asyncio
    async def test_empty_idea_batch_is_valid(self, analyzed, mock_client):
        mock_client.generate_ideas.return_value = []

        assert await analyzed.generate_ideas() == []
        assert analyzed.session.step is AppStep.IDEATION
        assert analyzed.session.notice is None

    @pytest.mark.asyncio
    async def test_idea_failure_keeps_existing_ideas(self, analyzed, mock_client, sample_ideas):
        mock_client.generate_ideas.side_effect = TimeoutError()

        await analyzed.generate_ideas()

        assert analyzed.session.ideas == sample_ideas
        assert analyzed.session.notice.message == "Failed to generate titles. Try again."


class TestScriptWriting:
    @pytest.mark.asyncio
    async def test_select_idea_streams_with_profile(self, analyzed, mock_client, sample_ideas, sample_profile):
        analyzed.set_script_length(ScriptLength.LONG.value)

        state = await analyzed.select_idea(sample_ideas[0])

        assert state is StreamState.COMPLETE
        assert analyzed.session.script.buffer == "Hello world"
        assert analyzed.session.script_open
        request = mock_client.stream_script.call_args.args[0]
        assert request == ProfileScriptRequest(
            title=sample_ideas[0].title, profile=sample_profile, length=ScriptLength.LONG.value
        )

    @pytest.mark.asyncio
    async def test_select_idea_requires_profile(self, controller, mock_client, sample_ideas):
        assert await controller.select_idea(sample_ideas[0]) is None
        mock_client.stream_script.assert_not_called()

    @pytest.mark.asyncio
    async def test_stream_failure_keeps_partial_text(self, analyzed, mock_client, sample_ideas):
        mock_client.stream_script.side_effect = lambda request: fragments(
            "Hello ", "world", error=RuntimeError("socket closed")
        )

        state = await analyzed.select_idea(sample_ideas[0])

        assert state is StreamState.FAILED
        assert analyzed.session.script.buffer == "Hello world"
        assert analyzed.session.notice.message.startswith("Failed to generate script stream. Try again.")

    @pytest.mark.asyncio
    async def test_reference_with_matched_length(self, controller, mock_client):
        transcript = "word " * 42

        await controller.create_from_reference("Rust ownership", transcript, match_length=True)

        request = mock_client.stream_script.call_args.args[0]
        assert isinstance(request, ReferenceScriptRequest)
        assert request.length == "Approximately 42 words (matching the reference material length)"
        assert controller.session.selected_idea.id.startswith("manual-")

    @pytest.mark.asyncio
    async def test_reference_uses_selected_length(self, controller, mock_client):
        controller.set_script_length(ScriptLength.SHORT.value)
        await controller.create_from_reference("Rust ownership", "some text")

        assert mock_client.stream_script.call_args.args[0].length == ScriptLength.SHORT.value

    @pytest.mark.asyncio
    async def test_regenerate_profile_idea(self, analyzed, mock_client, sample_ideas):
        await analyzed.select_idea(sample_ideas[1])
        await analyzed.regenerate_script()

        assert mock_client.stream_script.call_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("factory", [VideoIdea.custom, VideoIdea.manual, VideoIdea.direct_voice])
    async def test_regenerate_blocked_for_adhoc_ideas(self, analyzed, mock_client, factory):
        analyzed._open_script(factory("Ad hoc"))
        analyzed.session.script.load("Existing text")

        assert await analyzed.regenerate_script() is None
        assert analyzed.session.notice.message == REGENERATE_UNAVAILABLE
        assert analyzed.session.script.buffer == "Existing text"
        mock_client.stream_script.assert_not_called()

    @pytest.mark.asyncio
    async def test_custom_title_uses_profile(self, analyzed, mock_client):
        await analyzed.write_custom_title("  Why Cats Purr  ")

        request = mock_client.stream_script.call_args.args[0]
        assert request.title == "Why Cats Purr"
        assert not analyzed.session.selected_idea.can_regenerate

    @pytest.mark.asyncio
    async def test_start_script_supersedes_previous(self, analyzed, mock_client, sample_ideas):
        gate = asyncio.Event()

        async def slow(request):
            yield "old "
            await gate.wait()
            yield "stale"

        mock_client.stream_script.side_effect = slow
        first = analyzed.start_script(analyzed.select_idea(sample_ideas[0]))
        await wait_for(lambda: analyzed.session.script.buffer == "old ")

        mock_client.stream_script.side_effect = lambda request: fragments("fresh")
        second = analyzed.start_script(analyzed.select_idea(sample_ideas[1]))
        await second
        gate.set()

        assert first.cancelled()
        assert analyzed.session.script.buffer == "fresh"
        assert analyzed.session.selected_idea == sample_ideas[1]

    @pytest.mark.asyncio
    async def test_superseding_with_a_noop_releases_the_lock(self, analyzed, mock_client, sample_ideas):
        gate = asyncio.Event()

        async def slow(request):
            yield "draft "
            await gate.wait()
            yield "never"

        mock_client.stream_script.side_effect = slow
        first = analyzed.start_script(analyzed.select_idea(sample_ideas[0]))
        await wait_for(lambda: analyzed.session.script.buffer == "draft ")

        second = analyzed.start_script(analyzed.write_custom_title("   "))
        assert await second is None
        await wait_for(first.done)

        script = analyzed.session.script
        assert first.cancelled()
        assert script.state is StreamState.IDLE
        assert not script.generating
        assert script.buffer == "draft "
        analyzed.edit_script("my own words")
        assert script.buffer == "my own words"

    @pytest.mark.asyncio
    async def test_cancelled_task_returns_stream_to_idle(self, analyzed, mock_client, sample_ideas):
        gate = asyncio.Event()

        async def slow(request):
            yield "partial"
            await gate.wait()

        mock_client.stream_script.side_effect = slow
        task = asyncio.ensure_future(analyzed.select_idea(sample_ideas[0]))
        await wait_for(lambda: analyzed.session.script.buffer == "partial")

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert analyzed.session.script.state is StreamState.IDLE
        assert analyzed.session.script.buffer == "partial"

    def test_voice_studio_loads_script(self, controller, mock_client):
        idea = controller.open_voice_studio("My Essay", "Paragraph one.\nParagraph two.")

        assert idea.id.startswith("voice-")
        assert controller.session.script.buffer == "Paragraph one.\nParagraph two."
        assert controller.session.script.state is StreamState.IDLE
        mock_client.stream_script.assert_not_called()

    def test_export_script(self, controller, tmp_path):
        controller.open_voice_studio("My Essay", "Narration.")
        path = controller.export_script(str(tmp_path))

        assert path.name == "my_essay_narration.txt"
        assert path.read_text(encoding="utf-8") == "Narration."


class TestAudio:
    @pytest.mark.asyncio
    async def test_generate_audio_for_voice_studio(self, controller, mock_client):
        controller.open_voice_studio("Essay", "Some narration here.")

        parts = await controller.generate_audio("echo")

        assert [p.status for p in parts] == ["ready"]
        assert controller.session.voice.name == "echo"
        mock_client.synthesize_speech.assert_awaited_once_with("Some narration here.", "echo")

    @pytest.mark.asyncio
    async def test_unknown_voice(self, controller, mock_client):
        controller.open_voice_studio("Essay", "Some narration.")

        await controller.generate_audio("robot")

        assert "Unknown voice" in controller.session.notice.message
        mock_client.synthesize_speech.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_script_produces_nothing(self, controller, mock_client):
        assert await controller.generate_audio() == []
        mock_client.synthesize_speech.assert_not_called()

    @pytest.mark.asyncio
    async def test_regenerate_unknown_part(self, controller):
        assert await controller.regenerate_audio(3) is None
        assert controller.session.notice.message == "No audio segment 4 to regenerate."

    @pytest.mark.asyncio
    async def test_regenerate_loading_part_sets_notice(self, controller, mock_client):
        gate = asyncio.Event()

        async def gated(text, voice_id):
            await gate.wait()
            return b"\x00\x00"

        mock_client.synthesize_speech.side_effect = gated
        controller.open_voice_studio("Essay", "Some narration.")
        task = asyncio.ensure_future(controller.generate_audio())
        await wait_for(lambda: mock_client.synthesize_speech.await_count == 1)

        assert await controller.regenerate_audio(0) is None
        assert controller.session.notice.message == "Audio segment 1 is still generating."

        gate.set()
        await task
        assert mock_client.synthesize_speech.await_count == 1

    @pytest.mark.asyncio
    async def test_close_releases_audio(self, controller):
        controller.open_voice_studio("Essay", "Some narration.")
        await controller.generate_audio()
        pool = controller.session.audio.pool
        assert pool.outstanding == 1

        controller.close_script()

        assert pool.outstanding == 0
        assert controller.session.parts == []
        assert not controller.session.script_open

    @pytest.mark.asyncio
    async def test_opening_new_script_releases_audio(self, analyzed, sample_ideas):
        analyzed.open_voice_studio("Essay", "Some narration.")
        await analyzed.generate_audio()

        await analyzed.select_idea(sample_ideas[0])

        assert analyzed.session.audio.pool.outstanding == 0


class TestMetadata:
    @pytest.mark.asyncio
    async def test_generate_metadata(self, controller, mock_client):
        mock_client.generate_metadata.return_value = VideoMetadata(description="d")
        controller.open_voice_studio("Essay", "Narration.")

        metadata = await controller.generate_metadata()

        assert metadata.description == "d"
        mock_client.generate_metadata.assert_awaited_once_with("Essay", "Narration.")

    @pytest.mark.asyncio
    async def test_metadata_failure(self, controller, mock_client):
        mock_client.generate_metadata.side_effect = MalformedResponseError("bad")
        controller.open_voice_studio("Essay", "Narration.")

        assert await controller.generate_metadata() is None
        assert controller.session.notice.message == "Failed to generate metadata. Try again."


class TestProjects:
    @pytest.mark.asyncio
    async def test_save_requires_profile(self, controller):
        assert await controller.save_project() is None
        assert await controller.list_projects() == []

    @pytest.mark.asyncio
    async def test_save_and_load_round_trip(self, analyzed, sample_ideas):
        project = await analyzed.save_project()
        analyzed.reset()

        loaded = await analyzed.load_project(project.id)

        assert loaded.id == project.id
        assert analyzed.session.ideas == sample_ideas
        assert analyzed.session.step is AppStep.IDEATION

    @pytest.mark.asyncio
    async def test_load_missing_project(self, controller):
        assert await controller.load_project("nope") is None
        assert controller.session.notice is not None

    def test_snapshot_shape(self, analyzed):
        snapshot = analyzed.session.snapshot()

        assert snapshot["step"] == "IDEATION"
        assert snapshot["profile"]["channelName"] == "Kurzgesagt"
        assert snapshot["script"]["can_regenerate"] is False
        assert snapshot["audio"]["parts"] == []
