"""Deepgram live-listen websocket transcript channel."""

import json
import contextlib
import asyncio
import logging
from threading import Thread, Event, current_thread
from typing import Optional, Dict, Any

import aiohttp

from .base import AbstractTranscriptChannel
from ..exceptions import TransportConnectionError, SendError
from ..models.events import TranscriptEvent

logger = logging.getLogger(__name__)

DEEPGRAM_LISTEN_URL = "wss://api.deepgram.com/v1/listen"


def build_listen_params(language: str, sample_rate: int = 16000, punctuate: bool = True) -> Dict[str, str]:
    """Query parameters announcing the audio format and language."""
    return {
        "encoding": "linear16",
        "sample_rate": str(sample_rate),
        "channels": "1",
        "language": language,
        "interim_results": "true",
        "punctuate": "true" if punctuate else "false",
    }


def parse_deepgram_message(raw: str) -> Optional[TranscriptEvent]:
    """Extract a transcript event from a Deepgram results message.

    Metadata messages, malformed payloads and empty transcripts yield None.
    """
    try:
        data = json.loads(raw)
    except ValueError:
        logger.debug(f"Ignoring non-JSON Deepgram message: {raw[:80]!r}")
        return None
    if not isinstance(data, dict):
        return None

    channel = data.get("channel")
    if not isinstance(channel, dict):
        return None
    alternatives = channel.get("alternatives") or []
    if not alternatives or not isinstance(alternatives[0], dict):
        return None

    transcript = alternatives[0].get("transcript")
    if not transcript:
        return None
    return TranscriptEvent(text=transcript, is_final=bool(data.get("is_final", False)))


class DeepgramChannel(AbstractTranscriptChannel):
    """Relays audio to Deepgram over a websocket run on a private event loop."""

    def __init__(self,
                 api_key: Optional[str],
                 sample_rate: int = 16000,
                 punctuate: bool = True,
                 url: str = DEEPGRAM_LISTEN_URL,
                 close_timeout: float = 5.0):
        """Initialize Deepgram channel.

        Args:
            api_key: Deepgram API key, taken from the process environment
            sample_rate: Sample rate of the PCM16 chunks that will be sent
            punctuate: Ask Deepgram for punctuated transcripts
            url: Live-listen endpoint
            close_timeout: Seconds to wait for Deepgram to flush on close
        """
        super().__init__(sample_rate)
        self.api_key = api_key
        self.punctuate = punctuate
        self.url = url
        self.close_timeout = close_timeout
        self.service_name = "Deepgram"

        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.loop_thread: Optional[Thread] = None
        self.outbox: Optional[asyncio.Queue] = None
        self.session_task: Optional[asyncio.Task] = None
        self.is_open = False
        self.chunks_sent = 0
        self.send_failures = 0
        self._closing = Event()
        self._failure_reported = False

    def open(self, language: str) -> None:
        if self.is_open:
            logger.warning("Deepgram channel already open")
            return
        if not self.api_key:
            raise TransportConnectionError("Deepgram API key is not configured")

        self.language = language
        self._closing.clear()
        self._failure_reported = False
        try:
            self.loop = asyncio.new_event_loop()
            self.outbox = asyncio.Queue()
            self.loop_thread = Thread(target=self._run_loop, daemon=True)
            self.loop_thread.name = "DeepgramRelay"
            self.is_open = True
            self.loop_thread.start()
        except RuntimeError as e:
            self.is_open = False
            raise TransportConnectionError(f"Failed to start Deepgram relay: {e}") from e
        logger.info(f"Deepgram channel opening (language={language})")

    def send_chunk(self, data: bytes) -> None:
        if not self.is_open or self._closing.is_set():
            raise SendError("Deepgram channel is not open")
        try:
            self.loop.call_soon_threadsafe(self.outbox.put_nowait, data)
        except RuntimeError as e:
            raise SendError(f"Deepgram relay is not running: {e}") from e

    def close(self) -> None:
        if not self.is_open:
            return
        logger.info("Closing Deepgram channel")
        self.is_open = False
        self._closing.set()
        try:
            self.loop.call_soon_threadsafe(self.outbox.put_nowait, None)
        except RuntimeError:
            logger.debug("Deepgram loop already stopped")

        if self.loop_thread and self.loop_thread is not current_thread():
            self.loop_thread.join(timeout=self.close_timeout)
            if self.loop_thread.is_alive():
                logger.warning("Deepgram did not close the stream in time, cancelling")
                try:
                    self.loop.call_soon_threadsafe(self._cancel_session)
                except RuntimeError:
                    pass
                self.loop_thread.join(timeout=1.0)

    def _cancel_session(self) -> None:
        if self.session_task and not self.session_task.done():
            self.session_task.cancel()

    def _run_loop(self) -> None:
        """Internal method: own the event loop for the lifetime of the connection."""
        asyncio.set_event_loop(self.loop)
        try:
            self.session_task = self.loop.create_task(self._run_session())
            self.loop.run_until_complete(self.session_task)
        except asyncio.CancelledError:
            logger.debug("Deepgram session cancelled")
        finally:
            self.loop.close()
            logger.debug("Deepgram relay thread exiting and closing its event loop")

    async def _run_session(self) -> None:
        headers = {"Authorization": f"Token {self.api_key}"}
        params = build_listen_params(self.language, self.sample_rate, self.punctuate)
        try:
            async with aiohttp.ClientSession() as session:
                async with session.ws_connect(self.url, params=params, headers=headers) as ws:
                    logger.info("Deepgram websocket connected")
                    self._emit_ready("connected to Deepgram")
                    writer = asyncio.ensure_future(self._write_audio(ws))
                    try:
                        await self._read_transcripts(ws)
                    finally:
                        writer.cancel()
                        with contextlib.suppress(asyncio.CancelledError):
                            await writer
        except aiohttp.ClientError as e:
            logger.error(f"Deepgram connection failed: {e}")
            self._report_failure(f"Deepgram connection failed: {e}")
            return
        except Exception as e:
            if self._closing.is_set():
                logger.warning(f"Deepgram session ended with an error while closing: {e!r}")
            else:
                logger.error(f"Deepgram session failed: {e!r}", exc_info=True)
            self._report_failure(f"Deepgram session failed: {e!r}")
            return

        self._report_failure("Deepgram connection closed unexpectedly")

    async def _write_audio(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        while True:
            data = await self.outbox.get()
            if data is None:
                await ws.send_str(json.dumps({"type": "CloseStream"}))
                return
            try:
                await ws.send_bytes(data)
                self.chunks_sent += 1
            except (ConnectionResetError, aiohttp.ClientError) as e:
                self.send_failures += 1
                logger.warning(f"Failed to send audio chunk to Deepgram: {e}")

    async def _read_transcripts(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        async for message in ws:
            if message.type == aiohttp.WSMsgType.TEXT:
                event = parse_deepgram_message(message.data)
                if event is not None:
                    logger.debug(f"Deepgram {'final' if event.is_final else 'interim'}: '{event.text}'")
                    self._emit(event)
            elif message.type == aiohttp.WSMsgType.ERROR:
                logger.error(f"Deepgram websocket error: {ws.exception()}")
                self._report_failure(f"Deepgram websocket error: {ws.exception()}")
                return

    def _report_failure(self, message: str) -> None:
        """Emit one error status, unless the close was requested locally."""
        if self._closing.is_set() or self._failure_reported:
            return
        self._failure_reported = True
        self._emit_error(message)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "service": self.service_name,
            "language": self.language,
            "chunks_sent": self.chunks_sent,
            "send_failures": self.send_failures,
        }
