#  Voice Tutor - Server Launcher
#
#  python run.py [--host H] [--port P] [--reload]
#  Command-line flags override the server section of config.json.
#
#  Depends on: backend/app.py, backend/config.py, backend/logging_config.py
#  Used by:    (run directly)

import argparse
import sys

import uvicorn

from backend.logging_config import setup_logging


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the Voice Tutor API server.")
    parser.add_argument("--host", help="bind address (default: server.host)")
    parser.add_argument("--port", type=int, help="listen port (default: server.port)")
    parser.add_argument("--reload", action="store_true", default=None,
                        help="restart on code changes (development only)")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    # config.json is read at import time; a missing file is the common first-run error
    try:
        from backend.config import cfg
    except FileNotFoundError as e:
        print(f"Voice Tutor cannot start: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(
        level=cfg("server.log_level", "INFO"),
        fmt=cfg("server.log_format", "json"),
    )

    uvicorn.run(
        "backend.app:app",
        host=args.host or cfg("server.host", "0.0.0.0"),
        port=args.port or cfg("server.port", 5300),
        reload=args.reload if args.reload is not None else cfg("server.reload", False),
    )


if __name__ == "__main__":
    main()
