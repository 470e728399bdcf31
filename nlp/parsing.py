"""Deserialization of model output into typed results.

Each parser either returns a fully validated model or raises
``MalformedResponseError``. Optional list fields have named fallbacks so a
missing array never fails an otherwise good response.
"""

import json
import re
from typing import Any, Dict, List
from pydantic import ValidationError
from models.errors import MalformedResponseError
from models.schemas import ChannelProfile, IdeaSource, VideoIdea, VideoMetadata, new_idea_id
from loguru import logger

ANALYSIS_ERROR_MESSAGE = "AI analysis failed to produce valid JSON. Please try again."

PROFILE_LIST_FALLBACKS = {
    "tone": ["Informative", "Engaging"],
    "recurringKeywords": [],
    "performanceMetrics": [],
}

METADATA_LIST_FALLBACKS = {
    "tags": [],
    "hashtags": [],
}

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    text = text.strip()
    if "```" in text:
        text = _FENCE.sub("", text).strip()
    return text


def load_json(text: str) -> Any:
    """Parse JSON, tolerating code fences and trailing commas"""
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        cleaned = re.sub(r",\s*([}\]])", r"\1", cleaned)
        return json.loads(cleaned)


def apply_list_fallbacks(data: Dict[str, Any], fallbacks: Dict[str, list]) -> Dict[str, Any]:
    result = dict(data)
    for key, fallback in fallbacks.items():
        if not isinstance(result.get(key), list):
            result[key] = list(fallback)
    return result


def parse_channel_profile(text: str) -> ChannelProfile:
    try:
        data = load_json(text)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in analysis response: {e}")
        raise MalformedResponseError(ANALYSIS_ERROR_MESSAGE) from e

    if not isinstance(data, dict):
        raise MalformedResponseError(ANALYSIS_ERROR_MESSAGE)

    try:
        return ChannelProfile.model_validate(apply_list_fallbacks(data, PROFILE_LIST_FALLBACKS))
    except ValidationError as e:
        logger.error(f"Invalid profile structure: {e}")
        raise MalformedResponseError(ANALYSIS_ERROR_MESSAGE) from e


def parse_ideas(text: str) -> List[VideoIdea]:
    """Parse an idea batch. Never raises: anything unusable yields fewer (or zero) ideas."""
    try:
        data = load_json(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Could not parse idea batch: {e}")
        return []

    if isinstance(data, dict):
        data = data.get("ideas", [])
    if not isinstance(data, list):
        return []

    ideas = []
    seen = set()
    for item in data:
        if not isinstance(item, dict):
            continue
        item = {k: v for k, v in item.items() if k != "source"}
        idea_id = str(item.get("id") or "")
        if not idea_id or idea_id in seen:
            idea_id = new_idea_id()
        seen.add(idea_id)
        try:
            ideas.append(VideoIdea.model_validate({**item, "id": idea_id, "source": IdeaSource.PROFILE}))
        except ValidationError as e:
            logger.warning(f"Skipping malformed idea: {e}")
    return ideas


def parse_metadata(text: str) -> VideoMetadata:
    try:
        data = load_json(text)
    except json.JSONDecodeError as e:
        raise MalformedResponseError("Metadata response was not valid JSON.") from e

    if not isinstance(data, dict):
        raise MalformedResponseError("Metadata response was not a JSON object.")

    data = apply_list_fallbacks(data, METADATA_LIST_FALLBACKS)
    data["hashtags"] = [t if str(t).startswith("#") else f"#{t}" for t in data["hashtags"]]
    try:
        return VideoMetadata.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError("Metadata response had an unexpected shape.") from e
