"""Run the bridge under uvicorn with the configured frame size limit."""

from __future__ import annotations

import uvicorn

from intentstream.runtime.settings import load_settings
from intentstream.config.logging import LOG_LEVEL


def main() -> None:
    settings = load_settings()
    uvicorn.run(
        "intentstream.server:app",
        host=settings.server.host,
        port=settings.server.port,
        log_level=LOG_LEVEL.lower(),
        ws_max_size=settings.websocket.max_frame_bytes,
    )


if __name__ == "__main__":
    main()
