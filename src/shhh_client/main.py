#!/usr/bin/env python3
"""
Chat Client Application

Client application for creating and joining chat rooms.
Provides a terminal-based user interface using the Textual framework.
"""

import logging
import sys

from .config import ClientConfig

logger = logging.getLogger(__name__)


def configure_logging(config: ClientConfig) -> None:
    """Log to a file to avoid interfering with the UI."""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.FileHandler(config.log_file, mode="a")],
    )


def main():
    """Main entry point for the chat client."""
    try:
        config = ClientConfig.from_env()
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(2)

    configure_logging(config)
    logger.info("Starting chat client against %s", config.backend_url)

    try:
        from .ui import ChatApp

        app = ChatApp(config=config)
        app.run()
    except ImportError as e:
        print(f"Error: Could not import UI components: {e}")
        print("Make sure textual is installed: pip install textual")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nExiting...")
        sys.exit(0)


if __name__ == "__main__":
    main()
