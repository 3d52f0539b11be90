"""
Signaling Channel

Persistent WebSocket connection to the pairing server. Frames are JSON objects
tagged by a "type" field; each inbound frame is dispatched to the handler
registered for its type with on(). Abnormal drops are recovered with bounded
exponential backoff (see tools.backoff).

Lifecycle events are dispatched through the same handler table:
    "connect"       socket opened
    "disconnect"    socket gone for good (deliberate close or give-up)
    "reconnecting"  (attempt, delay) before each retry
    "give_up"       retries exhausted
"""

from tools.logger import log_info, log_debug, log_error, log_warning
from tools.backoff import ReconnectPolicy, ReconnectState
from tools.errors import ProtocolError
from typing import Callable, Dict, Optional
import aiohttp
import asyncio
import inspect
import json


LIFECYCLE_EVENTS = ("connect", "disconnect", "reconnecting", "give_up")

# Seconds between WebSocket pings; also detects half-open sockets
HEARTBEAT_SECONDS = 20.0

# Seconds allowed for the TCP, TLS and WebSocket upgrade handshake
HANDSHAKE_TIMEOUT = 15.0


def parse_frame(raw) -> dict:
    """
    Decode one inbound frame into a message dict.

    Raises:
        ProtocolError: frame is not a JSON object with a string "type"
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Frame is not UTF-8: {e}") from e

    try:
        message = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Invalid JSON frame: {e}") from e

    if not isinstance(message, dict):
        raise ProtocolError("Frame is not a JSON object")
    if not isinstance(message.get("type"), str):
        raise ProtocolError("Frame has no string 'type' tag")
    return message


class SignalingChannel:
    """
    Duplex message connection to the pairing server with reconnection.

    A channel instance is single-use: once close() is called it never
    reconnects, and a new instance is needed for a new session attempt.
    """

    def __init__(
        self,
        url: str,
        policy: Optional[ReconnectPolicy] = None,
        http_session_factory: Optional[Callable[[], aiohttp.ClientSession]] = None,
        handshake_timeout: float = HANDSHAKE_TIMEOUT,
    ):
        """
        Args:
            url: ws:// or wss:// endpoint of the pairing server
            policy: Retry configuration, defaults to ReconnectPolicy()
            http_session_factory: Builds the aiohttp session (TLS settings);
                a plain ClientSession is used when omitted
            handshake_timeout: A handshake slower than this counts as a
                failed open and is retried
        """
        self.url = url
        self.policy = policy or ReconnectPolicy()
        self.state = ReconnectState(self.policy)
        self.handshake_timeout = handshake_timeout
        self._http_session_factory = http_session_factory or aiohttp.ClientSession
        self._http: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._retry_task: Optional[asyncio.Task] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._handlers: Dict[str, Callable] = {}

    # ------------------------------------------------------------------
    # Handler registration
    # ------------------------------------------------------------------

    def on(self, name: str, handler: Optional[Callable] = None):
        """
        Register a handler for a message type or lifecycle event.

        Usable directly or as a decorator, like the Socket.IO client:

            @channel.on("Offer")
            async def handle_offer(message): ...
        """

        def set_handler(func):
            self._handlers[name] = func
            return func

        if handler is None:
            return set_handler
        return set_handler(handler)

    async def _trigger(self, name: str, *args):
        handler = self._handlers.get(name)
        if handler is None:
            return False
        try:
            result = handler(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            log_error(f"Handler for '{name}' raised: {e}")
        return True

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._ws.closed

    @property
    def closed(self) -> bool:
        return self.state.closed

    def open(self) -> asyncio.Task:
        """
        Start connecting in a task owned by the channel and return it.

        The caller is not blocked by a slow handshake, and close() cancels the
        attempt.
        """
        if self._connect_task is None or self._connect_task.done():
            self._connect_task = asyncio.create_task(self.connect())
        return self._connect_task

    async def connect(self):
        """
        Open the WebSocket, replacing any live one.

        A failed open is handled like an abnormal drop and schedules a retry.
        A retry already scheduled is cancelled.
        """
        if self.state.closed:
            log_warning("Channel was closed deliberately; create a new channel to reconnect")
            return

        retry, self._retry_task = self._retry_task, None
        if retry is not None and retry is not asyncio.current_task():
            retry.cancel()

        await self._drop_socket()

        if self._http is None or self._http.closed:
            self._http = self._http_session_factory()

        log_info(f"Connecting to signaling server at {self.url}")
        try:
            ws = await asyncio.wait_for(
                self._http.ws_connect(self.url, heartbeat=HEARTBEAT_SECONDS),
                self.handshake_timeout,
            )
        except asyncio.TimeoutError:
            log_warning(f"Signaling handshake timed out after {self.handshake_timeout:.1f}s")
            await self._handle_disconnect()
            return
        except (aiohttp.ClientError, OSError) as e:
            log_warning(f"Could not reach signaling server: {e}")
            await self._handle_disconnect()
            return

        if self.state.closed:
            # close() ran while the handshake was in flight
            await ws.close()
            return

        self._ws = ws
        self.state.reset()
        log_info("Connected to signaling server")
        await self._trigger("connect")
        self._reader_task = asyncio.create_task(self._read_loop(ws))

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse):
        try:
            async for frame in ws:
                if frame.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                    await self._dispatch(frame.data)
                elif frame.type == aiohttp.WSMsgType.ERROR:
                    log_warning(f"WebSocket error: {ws.exception()}")
                    break
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log_error(f"Signaling read loop failed: {e}")

        log_debug(f"WebSocket closed with code {ws.close_code}")
        if ws is self._ws:
            self._ws = None
            self._reader_task = None
            await self._handle_disconnect()

    async def _dispatch(self, raw):
        try:
            message = parse_frame(raw)
        except ProtocolError as e:
            log_error(f"Dropping malformed signaling frame: {e}")
            return

        msg_type = message["type"]
        log_debug(f"<- {msg_type}")

        if msg_type in LIFECYCLE_EVENTS or not await self._trigger(msg_type, message):
            log_warning(f"Dropping signaling message with unknown type: {msg_type}")

    async def _handle_disconnect(self):
        if self.state.closed:
            return

        if self.state.exhausted:
            log_error(f"Signaling server unreachable after {self.state.retry_count} retries, giving up")
            await self._trigger("give_up")
            await self.close()
            return

        attempt, delay = self.state.next_attempt()
        log_warning(f"Signaling connection lost, retry {attempt}/{self.policy.max_retries} in {delay:.2f}s")
        await self._trigger("reconnecting", attempt, delay)
        self._retry_task = asyncio.create_task(self._retry_after(delay))

    async def _retry_after(self, delay: float):
        await asyncio.sleep(delay)
        self._retry_task = None
        await self.connect()

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def send(self, message: dict) -> bool:
        """
        Send one message if the socket is open.

        Returns:
            True if the frame was written, False if it was dropped
        """
        if not self.is_open:
            log_debug(f"Cannot send {message.get('type')}, channel not open")
            return False

        try:
            await self._ws.send_str(json.dumps(message))
        except (ConnectionResetError, aiohttp.ClientError, RuntimeError) as e:
            log_warning(f"Failed to send {message.get('type')}: {e}")
            return False

        log_debug(f"-> {message.get('type')}")
        return True

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def _drop_socket(self):
        ws, self._ws = self._ws, None
        reader, self._reader_task = self._reader_task, None

        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        if ws is not None and not ws.closed:
            await ws.close()

    async def close(self):
        """Close deliberately: no retry, pending reconnect and handshake cancelled."""
        if self.state.closed:
            return

        self.state.closed = True

        retry, self._retry_task = self._retry_task, None
        if retry is not None and retry is not asyncio.current_task():
            retry.cancel()

        opening, self._connect_task = self._connect_task, None
        if opening is not None and opening is not asyncio.current_task() and not opening.done():
            opening.cancel()
            try:
                await opening
            except asyncio.CancelledError:
                pass

        await self._drop_socket()

        if self._http is not None:
            await self._http.close()
            self._http = None

        log_info("Signaling channel closed")
        await self._trigger("disconnect")
