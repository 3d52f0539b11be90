class MismatchError(Exception):
    """Base class for every error raised by the client."""


class MediaAcquisitionError(MismatchError):
    """The local camera or microphone could not be opened."""

    def __init__(self, source: str, cause: Exception = None):
        self.source = source
        self.cause = cause
        super().__init__(
            f"Camera / microphone access is required but '{source}' could not be opened"
            f"{f' ({cause})' if cause else ''}. "
            "Grant access to the device (or pass another one with --video/--audio) and start again."
        )


class NegotiationError(MismatchError):
    """A session description could not be produced or committed."""


class ProtocolError(MismatchError):
    """An inbound signaling frame is not a known message."""


class SignalingUnavailableError(MismatchError):
    """The signaling server stayed unreachable after every reconnect attempt."""
