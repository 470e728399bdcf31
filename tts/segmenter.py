from typing import List

DEFAULT_SEGMENT_WORDS = 500


def count_words(paragraph: str) -> int:
    stripped = paragraph.strip()
    return len(stripped.split()) if stripped else 0


def split_text_to_segments(text: str, target_words: int = DEFAULT_SEGMENT_WORDS) -> List[str]:
    """Split narration into chunks of roughly ``target_words`` words.

    Lines are never broken: a chunk is closed before the paragraph that would
    push it past the target, so a single oversized paragraph still becomes one
    chunk. Blank lines only separate. Always returns at least one segment.
    """
    if text is None:
        raise TypeError("text must be a string")

    chunks = []
    current = ""
    current_words = 0

    for paragraph in text.split("\n"):
        words = count_words(paragraph)
        if current_words > 0 and current_words + words > target_words:
            chunks.append(current.strip())
            current = paragraph + "\n"
            current_words = words
        else:
            current += paragraph + "\n"
            current_words += words

    if current.strip():
        chunks.append(current.strip())

    return chunks if chunks else [text]
