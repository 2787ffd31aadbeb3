"""Helper for running the Larder ASGI application."""

from __future__ import annotations

import os

import uvicorn

from larder.config import get_settings
from larder.logging_utils import configure_from_settings

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def _parse_port(value: str) -> int:
    try:
        port = int(value)
    except ValueError as exc:
        raise SystemExit(f"Invalid LARDER_SERVER_PORT '{value}': {exc}") from exc
    if not 0 < port < 65536:
        raise SystemExit(f"LARDER_SERVER_PORT must be between 1 and 65535, got {port}.")
    return port


def main() -> None:
    """Entry point for `larder-server`."""

    settings = get_settings()
    configure_from_settings(settings)

    # log_config=None keeps uvicorn on the handlers installed above.
    uvicorn.run(
        "larder.server.app:app",
        host=os.environ.get("LARDER_SERVER_HOST", DEFAULT_HOST),
        port=_parse_port(os.environ.get("LARDER_SERVER_PORT", str(DEFAULT_PORT))),
        reload=os.environ.get("RELOAD") == "1",
        log_config=None,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
