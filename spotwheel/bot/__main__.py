"""
spotwheel.bot.__main__ — Entry point for ``python -m spotwheel.bot``
====================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (soft settings).
3. Open the JSON data file.
4. Create the SpotwheelBot and hand it config + store.
5. Start the bot (blocks in the asyncio event loop).

Run with::

    python -m spotwheel.bot
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from spotwheel.bot.core import SpotwheelBot
from spotwheel.config import load_config
from spotwheel.storage.store import JsonStore

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("spotwheel")


def main() -> None:
    """Bootstrap and run the Spotwheel bot."""

    # 1. Environment variables (secrets).
    load_dotenv()

    token = os.getenv("DISCORD_TOKEN")
    if not token or token == "your-discord-bot-token-here":
        logger.critical(
            "DISCORD_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
        sys.exit(1)

    # 2. Soft configuration.
    cfg = load_config(os.getenv("SPOTWHEEL_CONFIG", "config.yaml"))
    logger.info("Config loaded: %s", cfg.brand_name)

    # 3. Storage.
    store = JsonStore(cfg.data_file)

    # 4. Bot.
    bot = SpotwheelBot(cfg=cfg, store=store)

    # 5. Run (blocks until Ctrl+C or SIGTERM).
    logger.info("Starting Spotwheel bot…")
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
