"""
Start the layerslice HTTP service.

    python run.py --host 127.0.0.1 --port 9000

Host and port default to ``SLICE_HOST``/``SLICE_PORT`` when set.  Log
output is at DEBUG level when ``SLICE_DEBUG`` is enabled or ``--debug``
is passed, INFO otherwise.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

import uvicorn

BACKEND_DIR = Path(__file__).resolve().parent / "backend"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the plane slicing API")
    parser.add_argument("--host", default=os.environ.get("SLICE_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.environ.get("SLICE_PORT", "8000")))
    parser.add_argument("--debug", action="store_true", help="log at DEBUG level")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    if str(BACKEND_DIR) not in sys.path:
        sys.path.append(str(BACKEND_DIR))

    from app.services.settings import slice_debug_enabled

    debug = args.debug or slice_debug_enabled()
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger(__name__).info("Serving slicing API on %s:%d", args.host, args.port)

    from app.main import app

    uvicorn.run(app, host=args.host, port=args.port, log_level="debug" if debug else "info")


if __name__ == "__main__":
    main()
