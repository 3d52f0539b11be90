"""
Remote media consumer for the command-line client.

aiortc only decodes remote frames when something reads the tracks, so the
partner's media is either written to a file per pairing (MediaRecorder) or
discarded (MediaBlackhole).
"""

from aiortc.contrib.media import MediaBlackhole, MediaRecorder
from tools.logger import log_info, log_error
from typing import Optional
import asyncio
import os


class RemoteMediaSink:

    def __init__(self, record_to: Optional[str] = None):
        """
        Args:
            record_to: Output file, e.g. "calls/call.mp4". Each pairing gets
                its own file with a numeric suffix. None discards the media.
        """
        self.record_to = record_to
        self._current = None
        self._recorder = None
        self._pairings = 0
        self._lock = asyncio.Lock()
        self._tasks = set()

    def update(self, status, remote_media):
        """Session observer: follow the remote media handle."""
        if remote_media is self._current:
            return
        self._current = remote_media
        task = asyncio.create_task(self._switch(remote_media))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _next_path(self) -> str:
        self._pairings += 1
        base, ext = os.path.splitext(self.record_to)
        return f"{base}-{self._pairings}{ext or '.mp4'}"

    async def _switch(self, remote_media):
        async with self._lock:
            await self._stop_recorder()
            if remote_media is None:
                return

            if self.record_to:
                path = self._next_path()
                recorder = MediaRecorder(path)
                log_info(f"Recording stranger to {path}")
            else:
                recorder = MediaBlackhole()

            for track in remote_media.tracks:
                recorder.addTrack(track)
            try:
                await recorder.start()
            except Exception as e:
                log_error(f"Failed to start remote media sink: {e}")
                return
            self._recorder = recorder

    async def _stop_recorder(self):
        recorder, self._recorder = self._recorder, None
        if recorder is None:
            return
        try:
            await recorder.stop()
        except Exception as e:
            log_error(f"Failed to stop remote media sink: {e}")

    async def stop(self):
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        async with self._lock:
            await self._stop_recorder()
