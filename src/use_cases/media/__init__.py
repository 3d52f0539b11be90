"""
Local and remote media handles.

The local camera/microphone are opened once per session and shared by every
peer link built during it: each link gets its own MediaRelay subscription, the
source tracks themselves are never handed out. They are released exactly once
when the session stops.
"""

from aiortc.contrib.media import MediaPlayer, MediaRelay
from tools.logger import log_info, log_debug, log_error
from tools.errors import MediaAcquisitionError
from typing import Callable, Optional
import platform


def default_sources() -> dict:
    """Camera and microphone names for the current platform, as MediaPlayer expects them."""
    system = platform.system()
    if system == "Darwin":
        return {
            "video": "default:none", "video_format": "avfoundation",
            "audio": "none:default", "audio_format": "avfoundation",
        }
    if system == "Windows":
        return {
            "video": "video=Integrated Camera", "video_format": "dshow",
            "audio": "audio=Microphone", "audio_format": "dshow",
        }
    return {
        "video": "/dev/video0", "video_format": "v4l2",
        "audio": "default", "audio_format": "pulse",
    }


class LocalMedia:
    """One audio+video source shared read-only by all peer links of a session."""

    def __init__(self, audio=None, video=None):
        self._audio = audio
        self._video = video
        self._relay = MediaRelay()
        self._released = False

    @property
    def audio(self):
        return self._audio

    @property
    def video(self):
        return self._video

    @property
    def released(self) -> bool:
        return self._released

    def tracks(self) -> list:
        """Fresh relay subscriptions to every source track, one set per peer link."""
        if self._released:
            return []
        return [self._relay.subscribe(track) for track in (self._audio, self._video) if track is not None]

    def release(self):
        """
        Stop the camera and microphone. Only the first call has an effect.

        A MediaPlayer shuts its decoder down once all of its tracks are stopped.
        """
        if self._released:
            return
        self._released = True

        for track in (self._audio, self._video):
            if track is None:
                continue
            try:
                track.stop()
            except Exception as e:
                log_error(f"Error stopping local {track.kind} track: {e}")
        log_info("Local media released")


class RemoteMedia:
    """Tracks received from the partner for the current pairing."""

    def __init__(self):
        self.tracks: list = []

    def add_track(self, track):
        self.tracks.append(track)

    @property
    def audio(self):
        return next((t for t in self.tracks if t.kind == "audio"), None)

    @property
    def video(self):
        return next((t for t in self.tracks if t.kind == "video"), None)


def _open_player(player_factory, source: str, fmt: Optional[str], options: Optional[dict]):
    try:
        return player_factory(source, format=fmt, options=options or {})
    except Exception as e:
        raise MediaAcquisitionError(source, e) from e


def acquire_local_media(
    video: Optional[str] = None,
    audio: Optional[str] = None,
    video_format: Optional[str] = None,
    audio_format: Optional[str] = None,
    video_options: Optional[dict] = None,
    player_factory: Callable = MediaPlayer,
) -> LocalMedia:
    """
    Open the local camera and microphone.

    Passing the same path for video and audio opens a single player, which is
    how a recorded file is used as both sources. Pass "none" to leave a kind
    out on purpose.

    Raises:
        MediaAcquisitionError: a device cannot be opened or has no track of
            the expected kind. Never retried.
    """
    defaults = default_sources()
    if video is None:
        video, video_format = defaults["video"], video_format or defaults["video_format"]
    if audio is None:
        audio, audio_format = defaults["audio"], audio_format or defaults["audio_format"]

    audio_track = video_track = None

    try:
        if video != "none" and video == audio:
            player = _open_player(player_factory, video, video_format, video_options)
            audio_track, video_track = player.audio, player.video
        else:
            if video != "none":
                player = _open_player(player_factory, video, video_format, video_options)
                video_track = player.video
            if audio != "none":
                player = _open_player(player_factory, audio, audio_format, None)
                audio_track = player.audio

        if video != "none" and video_track is None:
            raise MediaAcquisitionError(video, ValueError("no video stream"))
        if audio != "none" and audio_track is None:
            raise MediaAcquisitionError(audio, ValueError("no audio stream"))
    except MediaAcquisitionError:
        for track in (audio_track, video_track):
            if track is not None:
                track.stop()
        raise

    log_debug(f"Opened local media: video={video} audio={audio}")
    return LocalMedia(audio=audio_track, video=video_track)
