import asyncio
import os
from collections import deque
from pathlib import Path
from typing import Callable, Dict, List, Optional
from models.errors import SegmentBusyError
from models.schemas import ScriptPart
from nlp.writer import GenerationClient
from orchestrator.exports import part_filename
from tts.resources import AudioResourcePool
from tts.segmenter import DEFAULT_SEGMENT_WORDS, split_text_to_segments
from tts.wav import pcm_to_wav
from loguru import logger

PartsObserver = Callable[[List[ScriptPart]], None]


class AudioPipeline:
    """Turns a finished script into per-segment voice-over audio.

    Segments are synthesized by at most ``concurrency`` workers pulling from
    an index-ordered queue. With the default of 1 this is strictly sequential,
    keeping a single request in flight against the speech API. A failed
    segment is flagged on its own and never stops the rest.
    """

    def __init__(
        self,
        client: GenerationClient,
        pool: Optional[AudioResourcePool] = None,
        words_per_segment: Optional[int] = None,
        concurrency: Optional[int] = None,
        sample_rate: int = 24000,
        export_dir: Optional[str] = None
    ):
        self.client = client
        self.pool = pool or AudioResourcePool()
        self.words_per_segment = words_per_segment or int(os.getenv("SEGMENT_WORDS", DEFAULT_SEGMENT_WORDS))
        self.concurrency = max(1, concurrency or int(os.getenv("AUDIO_CONCURRENCY", "1")))
        self.sample_rate = sample_rate
        self.export_dir = export_dir if export_dir is not None else os.getenv("AUDIO_EXPORT_DIR")

        self._parts: Dict[int, ScriptPart] = {}
        self._observers: List[PartsObserver] = []
        self._generation = 0
        self.processing = False

    @property
    def parts(self) -> List[ScriptPart]:
        return [self._parts[i] for i in sorted(self._parts)]

    def subscribe(self, observer: PartsObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)
        return unsubscribe

    def _publish(self):
        snapshot = self.parts
        for observer in list(self._observers):
            observer(snapshot)

    def _set(self, part: ScriptPart):
        self._parts[part.index] = part
        self._publish()

    def audio_for(self, index: int) -> Optional[bytes]:
        part = self._parts.get(index)
        if part is None or part.audio_url is None:
            return None
        return self.pool.get(part.audio_url)

    async def produce_audio(self, script: str, voice_id: str) -> List[ScriptPart]:
        """Split ``script`` and synthesize every segment"""
        self.release_all()
        if not script.strip():
            return []

        generation = self._generation
        chunks = split_text_to_segments(script, self.words_per_segment)
        for index, text in enumerate(chunks):
            self._parts[index] = ScriptPart(index=index, text=text, is_audio_loading=True)
        self._publish()
        logger.info(f"Generating voice-over in {len(chunks)} segments (voice: {voice_id})")

        queue = deque(range(len(chunks)))

        async def worker():
            while queue and generation == self._generation:
                index = queue.popleft()
                await self._synthesize(index, voice_id, generation)

        self.processing = True
        try:
            workers = [worker() for _ in range(min(self.concurrency, len(chunks)))]
            await asyncio.gather(*workers)
        finally:
            if generation == self._generation:
                self.processing = False

        ready = sum(1 for p in self.parts if p.status == "ready")
        logger.info(f"Voice-over finished: {ready}/{len(chunks)} segments ready")
        return self.parts

    async def regenerate_part(self, index: int, voice_id: str) -> ScriptPart:
        """Re-synthesize one segment from its original text"""
        if index not in self._parts:
            raise KeyError(f"No script part {index}")

        part = self._parts[index]
        if part.is_audio_loading:
            raise SegmentBusyError(f"Part {index + 1} is still generating")
        self.pool.revoke(part.audio_url)
        self._set(part.as_loading())
        await self._synthesize(index, voice_id, self._generation)
        return self._parts.get(index, part)

    async def _synthesize(self, index: int, voice_id: str, generation: int):
        part = self._parts[index]
        try:
            pcm = await self.client.synthesize_speech(part.text, voice_id)
            wav = pcm_to_wav(pcm, self.sample_rate)
        except Exception as e:
            if generation != self._generation:
                return
            logger.error(f"Audio generation error for part {index + 1}: {e}")
            self._set(self._parts[index].as_error())
            return

        if generation != self._generation:
            logger.debug(f"Discarding audio for part {index + 1} from a released session")
            return

        current = self._parts[index]
        self.pool.revoke(current.audio_url)
        handle = self.pool.create(wav)
        self._set(current.as_ready(handle))
        if self.export_dir:
            self._export(index, wav)

    def _export(self, index: int, wav: bytes):
        try:
            os.makedirs(self.export_dir, exist_ok=True)
            path = Path(self.export_dir) / part_filename(index)
            path.write_bytes(wav)
            logger.info(f"Saved {path}")
        except OSError as e:
            logger.warning(f"Could not save part {index + 1}: {e}")

    def release_all(self):
        """Release every audio resource and forget the parts"""
        self._generation += 1
        self.pool.revoke_all()
        self._parts = {}
        self.processing = False
        self._publish()
