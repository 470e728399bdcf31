import os
import re
from pathlib import Path
from models.schemas import GeneratedScript

_NON_ALNUM = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def slugify_title(title: str) -> str:
    return _NON_ALNUM.sub("_", title).lower()


def narration_filename(title: str) -> str:
    return f"{slugify_title(title)}_narration.txt"


def script_markdown_filename(title: str) -> str:
    return f"{slugify_title(title)}_script.md"


def part_filename(index: int) -> str:
    """Download name for a 0-based segment index"""
    return f"part_{index + 1}_voiceover.wav"


def export_narration(title: str, text: str, directory: str) -> Path:
    os.makedirs(directory, exist_ok=True)
    path = Path(directory) / narration_filename(title)
    path.write_text(text, encoding="utf-8")
    return path


def export_markdown(script: GeneratedScript, directory: str) -> Path:
    os.makedirs(directory, exist_ok=True)
    path = Path(directory) / script_markdown_filename(script.title)
    path.write_text(script.to_markdown(), encoding="utf-8")
    return path
