from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Optional
from enum import Enum
import time
import uuid


class CamelModel(BaseModel):
    """Accepts both snake_case and the camelCase keys the model/storage use"""
    model_config = ConfigDict(populate_by_name=True)


class PerformanceMetric(CamelModel):
    name: str
    value: float = Field(ge=0, le=100)
    full_mark: float = Field(default=100, alias="fullMark")


class ChannelProfile(CamelModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    channel_name: str = Field(alias="channelName")
    niche: str = ""
    tone: List[str] = Field(default_factory=list)
    avg_duration: str = Field(default="", alias="avgDuration")
    hook_style: str = Field(default="", alias="hookStyle")
    storytelling_style: str = Field(default="", alias="storytellingStyle")
    recurring_keywords: List[str] = Field(default_factory=list, alias="recurringKeywords")
    audience_demographic: str = Field(default="", alias="audienceDemographic")
    upload_schedule: str = Field(default="", alias="uploadSchedule")
    performance_metrics: List[PerformanceMetric] = Field(default_factory=list, alias="performanceMetrics")


class IdeaSource(str, Enum):
    PROFILE = "profile"
    CUSTOM = "custom"
    MANUAL = "manual"
    VOICE = "voice"

    @property
    def prefix(self) -> str:
        return "" if self is IdeaSource.PROFILE else f"{self.value}-"


def _adhoc_id(source: IdeaSource) -> str:
    return f"{source.prefix}{int(time.time() * 1000)}"


class VideoIdea(CamelModel):
    id: str
    title: str
    hook: str = ""
    predicted_ctr: str = Field(default="", alias="predictedCTR")
    reasoning: str = ""
    source: IdeaSource = IdeaSource.PROFILE

    @model_validator(mode="before")
    @classmethod
    def _infer_source(cls, data):
        # Projects saved before the source field existed only carry the id prefix
        if isinstance(data, dict) and "source" not in data:
            idea_id = str(data.get("id", ""))
            for source in (IdeaSource.CUSTOM, IdeaSource.MANUAL, IdeaSource.VOICE):
                if idea_id.startswith(source.prefix):
                    return {**data, "source": source}
        return data

    @property
    def can_regenerate(self) -> bool:
        """Only ideas produced against a channel profile can be re-streamed"""
        return self.source is IdeaSource.PROFILE

    @classmethod
    def custom(cls, title: str) -> "VideoIdea":
        return cls(
            id=_adhoc_id(IdeaSource.CUSTOM),
            title=title,
            hook="Custom user input",
            predicted_ctr="N/A",
            reasoning="User defined title",
            source=IdeaSource.CUSTOM,
        )

    @classmethod
    def manual(cls, topic: str) -> "VideoIdea":
        return cls(
            id=_adhoc_id(IdeaSource.MANUAL),
            title=topic,
            hook="Manual Creation",
            predicted_ctr="N/A",
            reasoning="Generated from reference text",
            source=IdeaSource.MANUAL,
        )

    @classmethod
    def direct_voice(cls, title: str) -> "VideoIdea":
        return cls(
            id=_adhoc_id(IdeaSource.VOICE),
            title=title,
            hook="Direct Text to Voice",
            predicted_ctr="N/A",
            reasoning="User provided script",
            source=IdeaSource.VOICE,
        )


class ScriptSection(CamelModel):
    heading: str
    content: str
    visual_cue: Optional[str] = Field(default=None, alias="visualCue")
    duration: Optional[str] = None


class GeneratedScript(CamelModel):
    """Structured, display-only script. Not interchangeable with the narration buffer."""
    title: str
    sections: List[ScriptSection] = Field(default_factory=list)
    total_estimated_duration: str = Field(default="", alias="totalEstimatedDuration")

    def to_plain_text(self) -> str:
        return "\n\n".join(
            f"[{s.heading} - {s.duration or '0:00'}]\n{s.content}" for s in self.sections
        )

    def to_markdown(self) -> str:
        return "\n\n".join(
            f"### {s.heading} ({s.duration or ''})\n\n**Visual:** {s.visual_cue or 'None'}\n\n{s.content}"
            for s in self.sections
        )


class VideoMetadata(CamelModel):
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    hashtags: List[str] = Field(default_factory=list)
    pinned_comment: str = Field(default="", alias="pinnedComment")


class VoiceGender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"


class VoiceOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str  # value sent to the synthesis API
    label: str
    gender: VoiceGender
    style: str


class ScriptPart(BaseModel):
    """One synthesized chunk of the narration. Transitions return new instances."""
    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    text: str
    audio_url: Optional[str] = None
    is_audio_loading: bool = False
    audio_error: bool = False

    @model_validator(mode="after")
    def _one_state_at_a_time(self):
        active = [self.is_audio_loading, self.audio_error, self.audio_url is not None]
        if sum(active) > 1:
            raise ValueError("script part can be loading, failed or ready, not several at once")
        return self

    @property
    def status(self) -> str:
        if self.is_audio_loading:
            return "loading"
        if self.audio_error:
            return "error"
        if self.audio_url is not None:
            return "ready"
        return "pending"

    def as_loading(self) -> "ScriptPart":
        return ScriptPart(index=self.index, text=self.text, is_audio_loading=True)

    def as_ready(self, audio_url: str) -> "ScriptPart":
        return ScriptPart(index=self.index, text=self.text, audio_url=audio_url)

    def as_error(self) -> "ScriptPart":
        return ScriptPart(index=self.index, text=self.text, audio_error=True)


class SavedProject(BaseModel):
    id: str
    name: str
    timestamp: int  # epoch milliseconds
    profile: Optional[ChannelProfile] = None
    ideas: List[VideoIdea] = Field(default_factory=list)

    @classmethod
    def new(cls, profile: ChannelProfile, ideas: List[VideoIdea]) -> "SavedProject":
        now = int(time.time() * 1000)
        return cls(id=f"{now}-{uuid.uuid4().hex[:8]}", name=profile.channel_name, timestamp=now, profile=profile, ideas=ideas)


def new_idea_id() -> str:
    return uuid.uuid4().hex
