"""Entry point for running RewindXO via ``python -m rewindxo``."""

from __future__ import annotations

import logging
import os

import uvicorn


def main() -> None:
    """Start the FastAPI-powered RewindXO web server."""

    logging.basicConfig(
        level=os.environ.get("REWINDXO_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = os.environ.get("REWINDXO_HOST", "0.0.0.0")
    port = int(os.environ.get("REWINDXO_PORT", "8000"))
    uvicorn.run("rewindxo.ui:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
