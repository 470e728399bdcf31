from typing import Tuple
from models.schemas import VoiceGender, VoiceOption

# Prebuilt voices of the audio model
VOICES: Tuple[VoiceOption, ...] = (
    VoiceOption(name="alloy", label="Alloy", gender=VoiceGender.FEMALE, style="Neutral, Balanced"),
    VoiceOption(name="ash", label="Ash", gender=VoiceGender.MALE, style="Clear, Direct"),
    VoiceOption(name="ballad", label="Ballad", gender=VoiceGender.MALE, style="Warm, Melodic"),
    VoiceOption(name="coral", label="Coral", gender=VoiceGender.FEMALE, style="Friendly, Upbeat"),
    VoiceOption(name="echo", label="Echo", gender=VoiceGender.MALE, style="Deep, Narrative"),
    VoiceOption(name="sage", label="Sage", gender=VoiceGender.FEMALE, style="Calm, Soothing"),
    VoiceOption(name="shimmer", label="Shimmer", gender=VoiceGender.FEMALE, style="Bright, Expressive"),
    VoiceOption(name="verse", label="Verse", gender=VoiceGender.MALE, style="Energetic, Versatile"),
)

DEFAULT_VOICE = VOICES[0]

_NICHE_VOICES = {
    'tech': 'ash',
    'ai': 'echo',
    'finance': 'sage',
    'history': 'echo',
    'meditation': 'sage',
    'culture': 'coral',
    'entertainment': 'verse',
}


def get_voice(name: str) -> VoiceOption:
    for voice in VOICES:
        if voice.name == name:
            return voice
    raise ValueError(f"Unknown voice '{name}'. Available: {', '.join(v.name for v in VOICES)}")


def get_voice_for_niche(niche: str) -> VoiceOption:
    """Get appropriate voice for specific niche"""
    niche_lower = (niche or "").lower()
    for key, name in _NICHE_VOICES.items():
        if key in niche_lower:
            return get_voice(name)
    return DEFAULT_VOICE
