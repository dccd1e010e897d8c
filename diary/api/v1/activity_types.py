from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from diary.api.deps import http_error
from diary.core.errors import DiaryError
from diary.db.session import commit_or_raise, get_db
from diary.schemas.activity import ActivityTypeCreate, ActivityTypeResponse
from diary.services import catalog

router = APIRouter()


@router.get("/", response_model=list[ActivityTypeResponse])
def list_activity_types(db: Session = Depends(get_db)):
    """Catalog ordered by usage, served from a short-lived cache."""
    return catalog.list_activity_types(db)


@router.post("/", response_model=ActivityTypeResponse, status_code=status.HTTP_201_CREATED)
def create_activity_type(request: ActivityTypeCreate, db: Session = Depends(get_db)):
    if not request.name.strip():
        raise HTTPException(status_code=422, detail="name must not be blank")
    if catalog.find_by_name(db, request.name):
        raise HTTPException(status_code=409, detail="Activity type already exists")

    activity_type = catalog.add_activity_type(db, request.name, icon=request.icon, color=request.color)
    try:
        commit_or_raise(db, "create activity type")
    except DiaryError as exc:
        raise http_error(exc)
    db.refresh(activity_type)
    return activity_type
