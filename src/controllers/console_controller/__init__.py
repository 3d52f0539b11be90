"""
Console Controller

Maps lines typed on stdin to session intents:

    n, next, <enter>   skip to the next stranger
    r, report          report the stranger, then skip
    ready              re-queue after the stranger left
    q, quit, stop      end the session
"""

from tools.logger import *
import asyncio
import sys


COMMANDS = {
    "": "skip",
    "n": "skip",
    "next": "skip",
    "r": "report",
    "report": "report",
    "ready": "ready",
    "q": "stop",
    "quit": "stop",
    "stop": "stop",
}


def handle_command(session, line: str) -> bool:
    """
    Run the intent for one input line.

    Returns:
        False if the line is not a known command
    """
    intent = COMMANDS.get(line.strip().lower())
    if intent is None:
        log_warning(f"Unknown command '{line.strip()}' (n=next, r=report, q=quit)")
        return False
    getattr(session, intent)()
    return True


def init(session, stream=None) -> bool:
    """
    Register stdin with the event loop.

    Returns:
        False where the loop cannot watch stdin (e.g. Windows proactor loop)
    """
    stream = stream or sys.stdin
    loop = asyncio.get_running_loop()

    def on_readable():
        line = stream.readline()
        if not line:
            loop.remove_reader(stream)
            return
        handle_command(session, line)

    try:
        loop.add_reader(stream, on_readable)
    except (NotImplementedError, ValueError) as e:
        log_warning(f"Keyboard controls unavailable: {e}")
        return False

    log_info("Controls: <enter>/n = next, r = report, q = quit")
    return True


def stop(stream=None):
    stream = stream or sys.stdin
    try:
        asyncio.get_running_loop().remove_reader(stream)
    except (NotImplementedError, ValueError):
        pass
