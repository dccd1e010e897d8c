import logging

from sqlalchemy.orm import Session

from diary.core.config import settings
from diary.db.base import Base
from diary.db.session import commit_or_raise
from diary.models import activity, program  # noqa: F401  registers the tables on Base.metadata
from diary.services.catalog import seed_default_types

logger = logging.getLogger(__name__)


def init_db(engine, seed: bool = None):
    """Creates missing tables and seeds the default activity types."""
    Base.metadata.create_all(bind=engine)

    if seed is None:
        seed = settings.seed_activity_types
    if not seed:
        return

    with Session(engine) as db:
        created = seed_default_types(db)
        commit_or_raise(db, "seed activity types")
    if created:
        logger.info(f"Seeded {created} default activity types")
