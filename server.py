"""
Entry point for the Steam link server.

Reads the configuration from the environment (and a .env file), sets up
logging and serves the link endpoint until interrupted.
"""

import asyncio
import logging
import platform
import sys

import aiohttp
from dotenv import load_dotenv

from linker import LinkConfig, LinkServer

load_dotenv()


class LoggingFormatter(logging.Formatter):
    # Colors
    black = "\x1b[30m"
    red = "\x1b[31m"
    green = "\x1b[32m"
    yellow = "\x1b[33m"
    blue = "\x1b[34m"
    gray = "\x1b[38m"
    # Styles
    reset = "\x1b[0m"
    bold = "\x1b[1m"

    COLORS = {
        logging.DEBUG: gray + bold,
        logging.INFO: blue + bold,
        logging.WARNING: yellow + bold,
        logging.ERROR: red,
        logging.CRITICAL: red + bold,
    }

    def format(self, record):
        log_color = self.COLORS[record.levelno]
        format = "(black){asctime}(reset) (levelcolor){levelname:<8}(reset) (green){name}(reset) {message}"
        format = format.replace("(black)", self.black + self.bold)
        format = format.replace("(reset)", self.reset)
        format = format.replace("(levelcolor)", log_color)
        format = format.replace("(green)", self.green + self.bold)
        formatter = logging.Formatter(format, "%Y-%m-%d %H:%M:%S", style="{")
        return formatter.format(record)


def setup_logging(log_file: str) -> logging.Logger:
    logger = logging.getLogger("steam_linker")
    logger.setLevel(logging.INFO)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(LoggingFormatter())
    # File handler
    file_handler = logging.FileHandler(filename=log_file, encoding="utf-8", mode="a")
    file_handler_formatter = logging.Formatter(
        "[{asctime}] [{levelname:<8}] {name}: {message}", "%Y-%m-%d %H:%M:%S", style="{"
    )
    file_handler.setFormatter(file_handler_formatter)

    # Add the handlers
    logger.addHandler(console_handler)
    logger.addHandler(file_handler)
    return logger


async def serve(config: LinkConfig, logger: logging.Logger) -> None:
    """Run the link server until the task is cancelled."""
    logger.info(f"aiohttp version: {aiohttp.__version__}")
    logger.info(f"Python version: {platform.python_version()}")
    logger.info("-------------------")

    server = LinkServer(config, logger=logger)
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def main() -> int:
    config = LinkConfig.from_env()
    logger = setup_logging(config.log_file)

    missing = config.validate()
    if missing:
        logger.error(f"Link server not starting - missing settings: {', '.join(missing)}")
        return 1

    try:
        asyncio.run(serve(config, logger))
    except KeyboardInterrupt:
        logger.info("Shutting down link server")
    return 0


if __name__ == "__main__":
    sys.exit(main())
