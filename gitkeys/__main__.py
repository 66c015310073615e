"""Main entry point for direct module execution."""

import logging

from .cli import main

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logger.debug("Starting gitkeys")
    main()
