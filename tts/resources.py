import uuid
from typing import Dict, Optional, Tuple
from loguru import logger
from tts.wav import AUDIO_WAV_MIME


class AudioResourcePool:
    """Session-local audio handles (``blob:<uuid>``) that must be revoked when superseded"""

    def __init__(self):
        self._resources: Dict[str, Tuple[bytes, str]] = {}

    def create(self, data: bytes, mime: str = AUDIO_WAV_MIME) -> str:
        handle = f"blob:{uuid.uuid4()}"
        self._resources[handle] = (data, mime)
        return handle

    def get(self, handle: str) -> Optional[bytes]:
        entry = self._resources.get(handle)
        return entry[0] if entry else None

    def mime(self, handle: str) -> Optional[str]:
        entry = self._resources.get(handle)
        return entry[1] if entry else None

    def revoke(self, handle: Optional[str]):
        if handle and self._resources.pop(handle, None) is not None:
            logger.debug(f"Revoked audio resource {handle}")

    def revoke_all(self):
        count = len(self._resources)
        self._resources.clear()
        if count:
            logger.debug(f"Revoked {count} audio resources")

    @property
    def outstanding(self) -> int:
        return len(self._resources)

    def __contains__(self, handle: str) -> bool:
        return handle in self._resources
