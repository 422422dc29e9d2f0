"""
Server entrypoint: uvicorn on the FastAPI app.

Picks the first free port in 8000..8010 unless --port is given.
Run from backend dir: python serve.py [--host 127.0.0.1] [--port 8000]
"""

from __future__ import annotations

import argparse
import logging
import socket
import sys
from pathlib import Path

_backend_dir = Path(__file__).resolve().parent
if str(_backend_dir) not in sys.path:
    sys.path.insert(0, str(_backend_dir))


def _pick_port(host: str) -> int:
    """Return first free port in 8000..8010. Bind test then close."""
    for port in range(8000, 8011):
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.bind((host, port))
                return port
        except OSError:
            continue
    return 8000  # fallback (may fail later if all busy)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Serve the leaderboard API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=None)
    args = parser.parse_args(argv)

    import uvicorn
    from core.config import get_settings
    from main import app

    port = args.port or _pick_port(args.host)
    logging.getLogger(__name__).info("Serving on %s:%s", args.host, port)
    uvicorn.run(app, host=args.host, port=port, log_level=get_settings().log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
