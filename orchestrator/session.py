import asyncio
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Awaitable, List, Optional
from models.errors import SegmentBusyError, StudioError
from models.schemas import ChannelProfile, SavedProject, ScriptPart, VideoIdea, VideoMetadata, VoiceOption
from nlp.prompts import DEFAULT_SCRIPT_LENGTH, matched_length_directive
from nlp.writer import GenerationClient, ProfileScriptRequest, ReferenceScriptRequest
from orchestrator.audio import AudioPipeline
from orchestrator.exports import export_narration
from orchestrator.streaming import ScriptStreamConsumer, StreamState
from storage.projects import ProjectStore
from tts.voices import DEFAULT_VOICE, get_voice, get_voice_for_niche
from loguru import logger

REGENERATE_UNAVAILABLE = "Regeneration is currently only available for Channel Analysis workflows."


class AppStep(str, Enum):
    INPUT = "INPUT"
    ANALYZING = "ANALYZING"
    DASHBOARD = "DASHBOARD"
    IDEATION = "IDEATION"


@dataclass
class Notice:
    """A dismissible message shown after a failed operation"""
    message: str
    level: str = "error"


class StudioSession:
    """Everything one user is working on. Owned by a single StudioController."""

    def __init__(self, audio: AudioPipeline):
        self.step = AppStep.INPUT
        self.profile: Optional[ChannelProfile] = None
        self.ideas: List[VideoIdea] = []
        self.selected_idea: Optional[VideoIdea] = None
        self.script = ScriptStreamConsumer()
        self.script_open = False
        self.script_length: str = DEFAULT_SCRIPT_LENGTH.value
        self.voice: VoiceOption = DEFAULT_VOICE
        self.audio = audio
        self.metadata: Optional[VideoMetadata] = None
        self.notice: Optional[Notice] = None
        self.is_loading = False

    @property
    def parts(self) -> List[ScriptPart]:
        return self.audio.parts

    def snapshot(self) -> dict:
        return {
            "step": self.step.value,
            "is_loading": self.is_loading,
            "profile": self.profile.model_dump(mode="json", by_alias=True) if self.profile else None,
            "ideas": [i.model_dump(mode="json", by_alias=True) for i in self.ideas],
            "selected_idea": self.selected_idea.model_dump(mode="json", by_alias=True) if self.selected_idea else None,
            "script": {
                "open": self.script_open,
                "content": self.script.buffer,
                "state": self.script.state.value,
                "generating": self.script.generating,
                "can_regenerate": bool(self.selected_idea and self.selected_idea.can_regenerate),
            },
            "script_length": self.script_length,
            "voice": self.voice.name,
            "audio": {
                "processing": self.audio.processing,
                "parts": [p.model_dump() | {"status": p.status} for p in self.parts],
            },
            "metadata": self.metadata.model_dump(mode="json", by_alias=True) if self.metadata else None,
            "notice": {"message": self.notice.message, "level": self.notice.level} if self.notice else None,
        }


class StudioController:
    """Runs every studio operation against one explicit session.

    Remote failures stop here: they become a ``Notice`` (or a per-part error
    flag) and whatever the session already held is kept.
    """

    def __init__(
        self,
        client: Optional[GenerationClient] = None,
        store: Optional[ProjectStore] = None,
        audio: Optional[AudioPipeline] = None
    ):
        self.client = client or GenerationClient()
        self.store = store or ProjectStore()
        self.session = StudioSession(audio or AudioPipeline(self.client))
        self._script_task: Optional[asyncio.Task] = None

    def _notify(self, message: str, error: Optional[BaseException] = None):
        if error is not None:
            logger.error(f"{message} ({error})")
        self.session.notice = Notice(message)

    def dismiss_notice(self):
        self.session.notice = None

    # Analysis and ideation

    async def analyze(self, identifier: str) -> Optional[ChannelProfile]:
        s = self.session
        previous_step = s.step
        s.is_loading = True
        s.notice = None
        s.step = AppStep.ANALYZING
        try:
            profile = await self.client.analyze_channel(identifier)
        except StudioError as e:
            s.step = previous_step
            self._notify(str(e), e)
            return None
        except Exception as e:
            s.step = previous_step
            self._notify("Could not analyze channel. Please try again.", e)
            return None
        finally:
            s.is_loading = False

        s.profile = profile
        s.ideas = []
        s.voice = get_voice_for_niche(profile.niche)
        s.step = AppStep.DASHBOARD
        return profile

    async def generate_ideas(self) -> List[VideoIdea]:
        s = self.session
        if s.profile is None:
            self._notify("Analyze a channel before generating ideas.")
            return []

        s.notice = None
        s.is_loading = True
        try:
            ideas = await self.client.generate_ideas(s.profile)
        except StudioError as e:
            self._notify(str(e), e)
            return s.ideas
        except Exception as e:
            self._notify("Failed to generate titles. Try again.", e)
            return s.ideas
        finally:
            s.is_loading = False

        s.ideas = ideas
        s.step = AppStep.IDEATION
        return ideas

    def set_script_length(self, length: str):
        self.session.script_length = length

    # Script writing

    def _open_script(self, idea: VideoIdea):
        s = self.session
        self._cancel_script_task()
        s.audio.release_all()
        s.metadata = None
        s.selected_idea = idea
        s.script_open = True
        s.notice = None

    async def _stream(self, request) -> StreamState:
        s = self.session
        state = await s.script.consume(self.client.stream_script(request))
        if state is StreamState.FAILED:
            self._notify(f"Failed to generate script stream. Try again. ({s.script.error})")
        return state

    async def select_idea(self, idea: VideoIdea) -> Optional[StreamState]:
        """Open the script for ``idea`` and stream it against the active profile"""
        s = self.session
        if s.profile is None:
            self._notify("Analyze a channel or load a project before writing from an idea.")
            return None
        self._open_script(idea)
        request = ProfileScriptRequest(title=idea.title, profile=s.profile, length=s.script_length)
        return await self._stream(request)

    async def write_custom_title(self, title: str) -> Optional[StreamState]:
        if not title.strip():
            self._notify("Enter a title first.")
            return None
        return await self.select_idea(VideoIdea.custom(title.strip()))

    async def create_from_reference(self, topic: str, transcript: str, match_length: bool = False) -> StreamState:
        """Write a script for ``topic`` styled after a pasted reference transcript"""
        s = self.session
        idea = VideoIdea.manual(topic)
        self._open_script(idea)
        length = matched_length_directive(transcript) if match_length else s.script_length
        request = ReferenceScriptRequest(topic=topic, reference_text=transcript, length=length)
        return await self._stream(request)

    def open_voice_studio(self, title: str, script: str) -> VideoIdea:
        """Skip writing: use ``script`` as-is for voice-over"""
        idea = VideoIdea.direct_voice(title)
        self._open_script(idea)
        self.session.script.load(script)
        return idea

    async def regenerate_script(self) -> Optional[StreamState]:
        s = self.session
        idea = s.selected_idea
        if idea is None:
            return None
        if not idea.can_regenerate:
            self._notify(REGENERATE_UNAVAILABLE)
            return None
        return await self.select_idea(idea)

    def edit_script(self, text: str):
        self.session.script.edit(text)

    def start_script(self, operation: Awaitable) -> asyncio.Task:
        """Run a script operation in the background, superseding any earlier one"""
        self._cancel_script_task()
        self._script_task = asyncio.ensure_future(operation)
        return self._script_task

    def _cancel_script_task(self):
        task = self._script_task
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is None or task is current:
            return
        if not task.done():
            task.cancel()
            self.session.script.cancel()
        self._script_task = None

    def close_script(self):
        """Leave the script view: stop the stream and release all audio"""
        s = self.session
        self._cancel_script_task()
        s.script.cancel()
        s.audio.release_all()
        s.metadata = None
        s.script_open = False

    def reset(self):
        s = self.session
        self.close_script()
        s.script.clear()
        s.step = AppStep.INPUT
        s.profile = None
        s.ideas = []
        s.selected_idea = None
        s.notice = None

    def export_script(self, directory: str) -> Optional[Path]:
        s = self.session
        if s.selected_idea is None or not s.script.buffer.strip():
            self._notify("There is no script to export yet.")
            return None
        path = export_narration(s.selected_idea.title, s.script.buffer, directory)
        logger.info(f"Exported script to {path}")
        return path

    # Voice-over

    async def generate_audio(self, voice_id: Optional[str] = None) -> List[ScriptPart]:
        s = self.session
        s.notice = None
        if voice_id:
            try:
                s.voice = get_voice(voice_id)
            except ValueError as e:
                self._notify(str(e))
                return s.parts
        if s.script.generating:
            self._notify("Wait for the script to finish before generating audio.")
            return s.parts
        if not s.script.buffer.strip():
            return []
        return await s.audio.produce_audio(s.script.buffer, s.voice.name)

    async def regenerate_audio(self, index: int) -> Optional[ScriptPart]:
        try:
            return await self.session.audio.regenerate_part(index, self.session.voice.name)
        except KeyError as e:
            self._notify(f"No audio segment {index + 1} to regenerate.", e)
            return None
        except SegmentBusyError as e:
            self._notify(f"Audio segment {index + 1} is still generating.", e)
            return None

    async def generate_metadata(self) -> Optional[VideoMetadata]:
        s = self.session
        if s.selected_idea is None or not s.script.buffer.strip():
            return None
        s.is_loading = True
        try:
            s.metadata = await self.client.generate_metadata(s.selected_idea.title, s.script.buffer)
        except Exception as e:
            self._notify("Failed to generate metadata. Try again.", e)
            return None
        finally:
            s.is_loading = False
        return s.metadata

    # Saved projects

    async def list_projects(self) -> List[SavedProject]:
        return await self.store.list_projects()

    async def save_project(self) -> Optional[SavedProject]:
        s = self.session
        if s.profile is None:
            self._notify("Analyze a channel before saving a project.")
            return None
        return await self.store.save(s.profile, s.ideas)

    async def load_project(self, project_id: str) -> Optional[SavedProject]:
        project = await self.store.load(project_id)
        if project is None:
            self._notify("That project no longer exists.")
            return None
        s = self.session
        s.profile = project.profile
        s.ideas = list(project.ideas)
        s.notice = None
        s.step = AppStep.IDEATION
        return project

    async def delete_project(self, project_id: str) -> bool:
        return await self.store.delete(project_id)
