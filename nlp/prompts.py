# nlp/prompts.py

"""
Prompts for the studio.

- Module-level templates are filled with str.format(); literal JSON braces are doubled.
- Length directives are plain sentences injected into the script prompts.
"""

from enum import Enum

REFERENCE_CHAR_BUDGET = 10000


class ScriptLength(str, Enum):
    SHORT = "Short (approx 150-300 words, under 60s)"
    STANDARD = "Standard (approx 800-1200 words)"
    LONG = "Long (approx 1500-2000 words)"
    EXTENSIVE = "Extensive (approx 3000+ words)"

    @property
    def label(self) -> str:
        return {
            ScriptLength.SHORT: "Short (Shorts/TikTok)",
            ScriptLength.STANDARD: "Standard (5-8 mins)",
            ScriptLength.LONG: "Long Form (10+ mins)",
            ScriptLength.EXTENSIVE: "Deep Dive (20+ mins)",
        }[self]


DEFAULT_SCRIPT_LENGTH = ScriptLength.STANDARD


def matched_length_directive(reference_text: str) -> str:
    """Length directive that asks for the reference's own word count"""
    word_count = len(reference_text.strip().split())
    return f"Approximately {word_count} words (matching the reference material length)"


# =======================
# Channel analysis
# =======================
ANALYZE_CHANNEL_PROMPT = """Analyze the YouTube channel "{channel}".
Use web search to find its recent popular videos, descriptions, and general content strategy.

Return a RAW JSON object representing the channel's style profile.
Do not use markdown formatting (no ```json or ```).

The JSON must strictly follow this schema:
{{
  "channelName": "string",
  "niche": "string",
  "tone": ["string", "string"],
  "avgDuration": "string",
  "hookStyle": "string",
  "storytellingStyle": "string",
  "recurringKeywords": ["string", "string"],
  "audienceDemographic": "string",
  "uploadSchedule": "string",
  "performanceMetrics": [
    {{ "name": "Pacing", "value": 0-100, "fullMark": 100 }},
    {{ "name": "Humor", "value": 0-100, "fullMark": 100 }},
    {{ "name": "InformationDensity", "value": 0-100, "fullMark": 100 }},
    {{ "name": "EditingComplexity", "value": 0-100, "fullMark": 100 }},
    {{ "name": "EmotionalResonance", "value": 0-100, "fullMark": 100 }}
  ]
}}"""

# =======================
# Ideation
# =======================
IDEA_BATCH_SIZE = 10

GENERATE_IDEAS_PROMPT = """Based on the following YouTube Channel Profile, generate {count} viral video ideas.

Profile: {profile}

The titles must:
- Match the channel's niche and tone.
- Use high-CTR patterns (curiosity gaps, negatives, lists).
- Be competitive in the current YouTube landscape.

Return JSON: {{ "ideas": [ {{ "id": "...", "title": "...", "hook": "...", "predictedCTR": "...", "reasoning": "..." }} ] }}"""

# =======================
# Script writing
# =======================
_PLAIN_TEXT_RULES = """STRICT FORMATTING RULES:
- OUTPUT PLAIN TEXT ONLY.
- DO NOT use Markdown formatting (no ## headers, no **bold**, no bullet points).
- DO NOT include visual cues, camera directions, stage notes, or scene descriptions.
- DO NOT include speaker labels (e.g., "Host:", "Narrator:").
- DO NOT include timestamps.
- Write ONLY the spoken words for the voiceover.
- The output must be continuous plain text paragraphs suitable for reading aloud."""

SCRIPT_FROM_PROFILE_PROMPT = """Write a complete YouTube narration script for the title: "{title}".

You MUST emulate the style of the channel described below:
{profile}

TARGET LENGTH: {length}

""" + _PLAIN_TEXT_RULES + """

The script must be full length and ready for recording immediately.
Start directly with the hook."""

SCRIPT_FROM_REFERENCE_PROMPT = """Write a complete YouTube narration script for the topic: "{topic}".

Use the following Reference Transcript as a guide for TONE, VOCABULARY, PACING, and STRUCTURE:
---
{reference}
---

TARGET LENGTH: {length}

""" + _PLAIN_TEXT_RULES + """

Start directly with an engaging hook related to {topic}."""

SCRIPT_SYSTEM_PROMPT = "You are a professional YouTube scriptwriter. Write engaging narration meant to be read aloud."

# =======================
# SEO metadata
# =======================
METADATA_PROMPT = """Create YouTube metadata for this video: {title}
Script:
{script}

Create:
1) An SEO description (2-3 short paragraphs, first line is the hook).
2) 10-15 search tags.
3) 3-5 hashtags.
4) A pinned comment that invites discussion.

Return JSON: {{ "description": "...", "tags": ["..."], "hashtags": ["#.."], "pinnedComment": "..." }}"""

METADATA_SCRIPT_BUDGET = 6000

# =======================
# Speech
# =======================
SPEECH_SYSTEM_PROMPT = (
    "You are a voice-over artist. Read the user's text aloud exactly as written, "
    "with natural narration pacing. Do not add, drop, or comment on any words."
)
