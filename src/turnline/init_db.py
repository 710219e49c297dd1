"""Create the schema and seed the singleton rows.

Run with ``python -m turnline.init_db``. Production deployments should
prefer ``alembic upgrade head``; this is for local setups and demos.
"""

from __future__ import annotations

import logging

from turnline.db.session import SessionLocal, create_tables
from turnline.models import ServiceSettings, SystemState

logger = logging.getLogger(__name__)


def init_db() -> None:
    create_tables()
    with SessionLocal() as db:
        if db.get(ServiceSettings, 1) is None:
            db.add(ServiceSettings(id=1))
        if db.get(SystemState, 1) is None:
            db.add(SystemState(id=1))
        db.commit()
    logger.info("Database initialized")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
