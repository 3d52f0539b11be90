## Main Execution Script
from controllers import main_session_task
from tools.logger import *
from tools.backoff import ReconnectPolicy, MAX_RETRIES
from tools.errors import MediaAcquisitionError, SignalingUnavailableError
import argparse
import asyncio
import os
import sys

## Public pairing server
DEFAULT_SERVER_URL = "wss://mismatch-cx4b.onrender.com/ws"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="MisMatch random video chat client")
    parser.add_argument(
        "--server-url",
        default=os.environ.get("MISMATCH_SERVER_URL", DEFAULT_SERVER_URL),
        help="Signaling WebSocket URL (env MISMATCH_SERVER_URL)",
    )
    parser.add_argument(
        "-l",
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set the logging level (use -l or --log-level)",
    )
    parser.add_argument("--log-dir", help="Also write log files under this directory")
    parser.add_argument("--video", help="Camera device or media file, 'none' to disable")
    parser.add_argument("--video-format", help="FFmpeg input format for --video, e.g. v4l2")
    parser.add_argument("--audio", help="Microphone device or media file, 'none' to disable")
    parser.add_argument("--audio-format", help="FFmpeg input format for --audio, e.g. pulse")
    parser.add_argument(
        "--ice-server",
        action="append",
        default=[],
        help="Extra STUN/TURN URL (repeatable), turn:user:pass@host:port for TURN",
    )
    parser.add_argument("--record", help="Record each stranger to this file (numbered per pairing)")
    parser.add_argument(
        "--max-retries",
        type=int,
        default=MAX_RETRIES,
        help="Reconnect attempts before giving up",
    )
    parser.add_argument("--ca-file", help="Extra CA bundle for wss:// servers")
    parser.add_argument(
        "--no-controls",
        action="store_true",
        help="Do not read commands from stdin",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    set_log_level(args.log_level)
    quiet_third_party_loggers()
    if args.log_dir:
        configure_file_logging(args.log_dir)

    media_options = {
        "video": args.video,
        "video_format": args.video_format,
        "audio": args.audio,
        "audio_format": args.audio_format,
    }

    try:
        log_info(f"Connecting to pairing server at {args.server_url}...")
        asyncio.run(
            main_session_task(
                args.server_url,
                media_options=media_options,
                ice_servers=args.ice_server,
                policy=ReconnectPolicy(max_retries=args.max_retries),
                ca_file=args.ca_file,
                record_to=args.record,
                interactive=not args.no_controls,
            )
        )
    except KeyboardInterrupt:
        log_warning("Keyboard interrupt received. Session closed.")
    except MediaAcquisitionError as e:
        log_critical(str(e))
        return 2
    except SignalingUnavailableError as e:
        log_error(str(e))
        return 3
    return 0


if __name__ == "__main__":
    sys.exit(main())
