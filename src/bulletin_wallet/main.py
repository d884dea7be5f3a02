"""Application entry point for the bulletin wallet server."""

from __future__ import annotations

import logging
import os

import uvicorn

from bulletin_wallet.config.settings import AppConfig


def main() -> None:
    """Start the bulletin wallet server."""
    config = AppConfig(config_path=os.getenv("BULLETIN_CONFIG_PATH", ""))
    log_level = "debug" if config.debug else "info"
    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    reload = os.getenv("BULLETIN_RELOAD", "false").lower() in ("1", "true", "yes")
    uvicorn.run(
        "bulletin_wallet.api.app:create_app",
        factory=True,
        host=config.server.host,
        port=config.server.port,
        reload=reload,
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
