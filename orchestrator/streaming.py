import asyncio
from enum import Enum
from typing import AsyncIterator, Callable, List, Optional
from models.errors import ScriptLockedError
from loguru import logger

BufferObserver = Callable[[str], None]


class StreamState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETE = "complete"
    FAILED = "failed"


class ScriptStreamConsumer:
    """Drives a script stream into a single text buffer.

    Each ``consume`` call takes a new generation token. A loop whose token is
    no longer current stops applying fragments, so a superseded or cancelled
    stream can never write into the buffer of the one that replaced it.
    """

    def __init__(self):
        self.buffer = ""
        self.state = StreamState.IDLE
        self.error: Optional[str] = None
        self._token = 0
        self._observers: List[BufferObserver] = []

    @property
    def generating(self) -> bool:
        return self.state is StreamState.STREAMING

    def subscribe(self, observer: BufferObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)
        return unsubscribe

    def _publish(self):
        for observer in list(self._observers):
            observer(self.buffer)

    def _begin(self) -> int:
        self._token += 1
        self.buffer = ""
        self.error = None
        self.state = StreamState.STREAMING
        self._publish()
        return self._token

    async def consume(self, stream: AsyncIterator[str]) -> StreamState:
        """Apply every fragment of ``stream`` in order. Never raises on stream failure."""
        token = self._begin()
        try:
            async for fragment in stream:
                if token != self._token:
                    logger.warning(f"Dropping fragment from superseded stream #{token}")
                    break
                self.buffer += fragment
                self._publish()
        except asyncio.CancelledError:
            # The finally block closes the stream once the token has moved on
            if token == self._token:
                self.cancel()
            raise
        except Exception as e:
            if token != self._token:
                logger.debug(f"Superseded stream #{token} failed after replacement: {e}")
                return self.state
            logger.error(f"Script stream failed after {len(self.buffer)} chars: {e}")
            self.error = str(e) or e.__class__.__name__
            self.state = StreamState.FAILED
            return self.state
        finally:
            if token != self._token:
                await _close(stream)

        if token == self._token:
            self.state = StreamState.COMPLETE
            logger.info(f"Script stream #{token} complete ({len(self.buffer.split())} words)")
        return self.state

    def cancel(self):
        """Stop applying the in-flight stream. The buffer is kept as it is."""
        if self.generating:
            logger.info(f"Cancelled script stream #{self._token}")
        self._token += 1
        self.state = StreamState.IDLE

    def edit(self, text: str):
        if self.generating:
            raise ScriptLockedError("The script is still being written")
        self.buffer = text
        self._publish()

    def load(self, text: str):
        """Replace the buffer with ready-made text (direct voice workflow)"""
        self.cancel()
        self.error = None
        self.buffer = text
        self._publish()

    def clear(self):
        self.cancel()
        self.error = None
        self.buffer = ""
        self._publish()


async def _close(stream):
    aclose = getattr(stream, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as e:
        logger.debug(f"Error closing superseded stream: {e}")
