import base64
import json
import os
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Union
import openai
from models.errors import ConfigurationError, GenerationError, SynthesisError
from models.schemas import ChannelProfile, VideoIdea, VideoMetadata
from nlp.parsing import parse_channel_profile, parse_ideas, parse_metadata
from nlp.prompts import (
    ANALYZE_CHANNEL_PROMPT, GENERATE_IDEAS_PROMPT, IDEA_BATCH_SIZE,
    SCRIPT_FROM_PROFILE_PROMPT, SCRIPT_FROM_REFERENCE_PROMPT, SCRIPT_SYSTEM_PROMPT,
    METADATA_PROMPT, METADATA_SCRIPT_BUDGET, SPEECH_SYSTEM_PROMPT,
    REFERENCE_CHAR_BUDGET, DEFAULT_SCRIPT_LENGTH,
)
from loguru import logger
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class ProfileScriptRequest:
    title: str
    profile: ChannelProfile
    length: str = DEFAULT_SCRIPT_LENGTH.value


@dataclass(frozen=True)
class ReferenceScriptRequest:
    topic: str
    reference_text: str
    length: str = DEFAULT_SCRIPT_LENGTH.value


ScriptRequest = Union[ProfileScriptRequest, ReferenceScriptRequest]


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _profile_json(profile: ChannelProfile) -> str:
    return json.dumps(profile.model_dump(mode="json", by_alias=True))


class GenerationClient:
    """Adapter over the model API: analysis, ideation, script streaming, speech"""

    def __init__(self, api_key: Optional[str] = None, client: Optional[openai.AsyncOpenAI] = None):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self._client = client
        self.analysis_model = os.getenv("ANALYSIS_MODEL", "gpt-4o-search-preview")
        self.analysis_web_search = _env_flag("ANALYSIS_WEB_SEARCH", "true")
        self.ideas_model = os.getenv("IDEAS_MODEL", "gpt-4o-mini")
        self.script_model = os.getenv("SCRIPT_MODEL", "gpt-4o")
        self.metadata_model = os.getenv("METADATA_MODEL", "gpt-4o-mini")
        self.tts_model = os.getenv("TTS_MODEL", "gpt-4o-mini-audio-preview")

    @property
    def client(self) -> openai.AsyncOpenAI:
        # Built lazily so a missing key fails the first call, not startup
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError(
                    "OPENAI_API_KEY is not set. Add it to your environment or .env file and retry."
                )
            self._client = openai.AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def analyze_channel(self, identifier: str) -> ChannelProfile:
        """Build a style profile for a channel name, handle or URL"""
        prompt = ANALYZE_CHANNEL_PROMPT.format(channel=identifier)
        kwargs = {}
        if self.analysis_web_search:
            kwargs["web_search_options"] = {}

        response = await self.client.chat.completions.create(
            model=self.analysis_model,
            messages=[
                {"role": "system", "content": "You are a YouTube strategy analyst. Always return valid JSON."},
                {"role": "user", "content": prompt}
            ],
            **kwargs
        )

        text = response.choices[0].message.content if response.choices else None
        if not text:
            raise GenerationError("Failed to analyze channel.")

        profile = parse_channel_profile(text)
        logger.info(f"Analyzed channel '{profile.channel_name}' ({profile.niche})")
        return profile

    async def generate_ideas(self, profile: ChannelProfile) -> List[VideoIdea]:
        """Generate a batch of profile-bound ideas. An unusable answer yields []."""
        prompt = GENERATE_IDEAS_PROMPT.format(count=IDEA_BATCH_SIZE, profile=_profile_json(profile))

        response = await self.client.chat.completions.create(
            model=self.ideas_model,
            messages=[
                {"role": "system", "content": "You are a YouTube growth strategist. Return STRICT JSON only."},
                {"role": "user", "content": prompt}
            ],
            temperature=0.9,
            response_format={"type": "json_object"},
        )

        text = response.choices[0].message.content if response.choices else None
        if not text:
            raise GenerationError("Failed to generate titles.")

        ideas = parse_ideas(text)
        if not ideas:
            logger.warning(f"Idea generation for '{profile.channel_name}' returned no usable ideas")
        else:
            logger.info(f"Generated {len(ideas)} ideas for '{profile.channel_name}'")
        return ideas

    def _script_prompt(self, request: ScriptRequest) -> str:
        if isinstance(request, ProfileScriptRequest):
            return SCRIPT_FROM_PROFILE_PROMPT.format(
                title=request.title,
                profile=_profile_json(request.profile),
                length=request.length,
            )
        if isinstance(request, ReferenceScriptRequest):
            return SCRIPT_FROM_REFERENCE_PROMPT.format(
                topic=request.topic,
                reference=request.reference_text[:REFERENCE_CHAR_BUDGET],
                length=request.length,
            )
        raise TypeError(f"Unsupported script request: {type(request).__name__}")

    async def stream_script(self, request: ScriptRequest) -> AsyncIterator[str]:
        """Yield narration fragments in order until the remote stream ends"""
        prompt = self._script_prompt(request)

        stream = await self.client.chat.completions.create(
            model=self.script_model,
            messages=[
                {"role": "system", "content": SCRIPT_SYSTEM_PROMPT},
                {"role": "user", "content": prompt}
            ],
            temperature=0.8,
            stream=True,
        )

        async for chunk in stream:
            if not chunk.choices:
                continue
            fragment = chunk.choices[0].delta.content
            if fragment:
                yield fragment

    async def synthesize_speech(self, text: str, voice_id: str) -> bytes:
        """Return raw 24 kHz mono 16-bit PCM for ``text``"""
        response = await self.client.chat.completions.create(
            model=self.tts_model,
            modalities=["text", "audio"],
            audio={"voice": voice_id, "format": "pcm16"},
            messages=[
                {"role": "system", "content": SPEECH_SYSTEM_PROMPT},
                {"role": "user", "content": text}
            ],
        )

        message = response.choices[0].message if response.choices else None
        audio = getattr(message, "audio", None)
        data = getattr(audio, "data", None)
        if not data:
            raise SynthesisError("No audio data returned from API")

        pcm = base64.b64decode(data)
        logger.info(f"Synthesized {len(text.split())} words with voice '{voice_id}' ({len(pcm)} bytes)")
        return pcm

    async def generate_metadata(self, title: str, script: str) -> VideoMetadata:
        """SEO description, tags, hashtags and pinned comment for a finished script"""
        prompt = METADATA_PROMPT.format(title=title, script=script[:METADATA_SCRIPT_BUDGET])

        response = await self.client.chat.completions.create(
            model=self.metadata_model,
            messages=[
                {"role": "system", "content": "You are a YouTube optimization expert. Return STRICT JSON only."},
                {"role": "user", "content": prompt}
            ],
            temperature=0.5,
            response_format={"type": "json_object"},
        )

        text = response.choices[0].message.content if response.choices else None
        if not text:
            raise GenerationError("Failed to generate metadata.")
        return parse_metadata(text)
