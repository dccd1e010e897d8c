import logging
from typing import List, Optional

from cachetools import TTLCache
from sqlalchemy import event
from sqlalchemy.orm import Session

from diary.core.config import settings
from diary.core.errors import NotFoundError
from diary.models.activity import ActivityType
from diary.schemas.activity import ActivityTypeResponse

logger = logging.getLogger(__name__)

# CACHING STRATEGY:
# The catalog is read on every log form and changes rarely.
# Writes that touch activity_types (new type, usage count) flag their session;
# the entry is dropped once that session commits, never before.
catalog_cache = TTLCache(maxsize=settings.catalog_cache_size, ttl=settings.catalog_cache_ttl)
CATALOG_KEY = "activity_types"
_DIRTY_FLAG = "catalog_dirty"

# Bumped on every invalidation; a read that started before it does not repopulate the cache
_generation = 0

DEFAULT_ACTIVITY_TYPES = [
    {"name": "Walking", "icon": "walk", "color": "#4CAF50"},
    {"name": "Running", "icon": "fitness", "color": "#F44336"},
    {"name": "Cycling", "icon": "bicycle", "color": "#2196F3"},
    {"name": "Swimming", "icon": "water", "color": "#00BCD4"},
    {"name": "Yoga", "icon": "body", "color": "#9C27B0"},
    {"name": "Gym", "icon": "barbell", "color": "#FF5722"},
    {"name": "Stretching", "icon": "accessibility", "color": "#8BC34A"},
    {"name": "Meditation", "icon": "leaf", "color": "#607D8B"},
    {"name": "Dance", "icon": "musical-notes", "color": "#E91E63"},
    {"name": "Hiking", "icon": "trail-sign", "color": "#795548"},
]


def invalidate_catalog():
    global _generation
    _generation += 1
    if catalog_cache.pop(CATALOG_KEY, None) is not None:
        logger.info("Invalidated activity type catalog cache")


def mark_catalog_changed(db: Session):
    db.info[_DIRTY_FLAG] = True


@event.listens_for(Session, "after_commit")
def _invalidate_after_commit(session):
    if session.info.pop(_DIRTY_FLAG, False):
        invalidate_catalog()


@event.listens_for(Session, "after_soft_rollback")
def _forget_after_rollback(session, previous_transaction):
    session.info.pop(_DIRTY_FLAG, None)


def list_activity_types(db: Session) -> List[ActivityTypeResponse]:
    """Most used first, then alphabetical."""
    cached = catalog_cache.get(CATALOG_KEY)
    if cached is not None:
        return cached

    generation = _generation
    rows = db.query(ActivityType)\
        .order_by(ActivityType.usage_count.desc(), ActivityType.name.asc())\
        .all()
    types = [ActivityTypeResponse.model_validate(row) for row in rows]
    if generation == _generation:
        catalog_cache[CATALOG_KEY] = types
    return types


def get_activity_type(db: Session, type_id: int) -> ActivityType:
    activity_type = db.get(ActivityType, type_id)
    if not activity_type:
        raise NotFoundError(f"Activity type {type_id} not found")
    return activity_type


def find_by_name(db: Session, name: str) -> Optional[ActivityType]:
    return db.query(ActivityType).filter(ActivityType.name == name.strip()).first()


def add_activity_type(db: Session, name: str, icon: str = "fitness", color: str = "#FF9800",
                      is_custom: bool = True, usage_count: int = 0) -> ActivityType:
    """Adds a type to the session. The caller commits."""
    activity_type = ActivityType(
        name=name.strip(),
        icon=icon,
        color=color,
        is_custom=is_custom,
        usage_count=usage_count,
    )
    db.add(activity_type)
    db.flush()  # assigns the id
    mark_catalog_changed(db)
    return activity_type


def record_usage(db: Session, type_id: int):
    """Bumps usage_count in SQL so concurrent increments are not lost. The caller commits."""
    db.query(ActivityType)\
        .filter(ActivityType.id == type_id)\
        .update({ActivityType.usage_count: ActivityType.usage_count + 1}, synchronize_session=False)
    mark_catalog_changed(db)


def seed_default_types(db: Session) -> int:
    """Insert-or-ignore the built-in catalog, by name."""
    existing = {name for (name,) in db.query(ActivityType.name).all()}
    created = 0
    for entry in DEFAULT_ACTIVITY_TYPES:
        if entry["name"] in existing:
            continue
        db.add(ActivityType(is_custom=False, usage_count=0, **entry))
        created += 1
    if created:
        mark_catalog_changed(db)
    return created
