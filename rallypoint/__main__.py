"""
rallypoint.__main__ — Entry point for ``python -m rallypoint``
==============================================================

Wiring:
1. Load .env (secrets, DATABASE_URL).
2. Load config.yaml (soft settings).
3. Create the SQLAlchemy engine and ensure tables exist.
4. Serve the API with uvicorn (blocking).

Run with::

    uv run python -m rallypoint
"""

from __future__ import annotations

import logging

import uvicorn
from dotenv import load_dotenv

from rallypoint.config import load_config
from rallypoint.database.engine import create_db_engine, init_db

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("rallypoint")


def main() -> None:
    """Bootstrap and serve the Rallypoint API."""

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2. Soft configuration.
    cfg = load_config()
    logger.info("Config loaded — Community: %s", cfg.community_name)

    # 3. Database.
    engine = create_db_engine()
    init_db(engine)
    engine.dispose()

    # 4. API (imported late so JWT_SECRET is read after .env is loaded).
    from rallypoint.api.main import app

    logger.info("Starting Rallypoint API on port %d…", cfg.api_port)
    uvicorn.run(app, host="0.0.0.0", port=cfg.api_port, log_config=None)


if __name__ == "__main__":
    main()
