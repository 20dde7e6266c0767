"""Process entry point."""

from __future__ import annotations

import argparse

import uvicorn

from gh_forwarder.app import create_app
from gh_forwarder.config import load_settings
from gh_forwarder.utils import setup_logging


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Forward GitHub webhooks to Telegram.")
    parser.add_argument("-c", "--config", help="path to the YAML config file")
    args = parser.parse_args(argv)

    settings = load_settings(args.config)
    setup_logging(settings.logging.level, settings.logging.json_output)
    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
