from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.core.repository import (
    AlreadyExistsError,
    NotFoundError,
    UnknownPlatformError,
    UserRepository,
)
from api.db.session import get_db

router = APIRouter(tags=["user"])

EXTERNAL_CREATOR_ID = r"^tmdb-\d+$"


class PlatformsIn(BaseModel):
    slugs: List[str]


class FavoriteCreatorIn(BaseModel):
    id: str = Field(..., pattern=EXTERNAL_CREATOR_ID)  # 'tmdb-{person id}'
    name: str = Field(..., min_length=1)
    creator_role: Literal["actor", "director"]
    avatar_url: Optional[str] = None


class WatchedIn(BaseModel):
    external_movie_id: str = Field(..., min_length=1)
    media_type: Literal["movie", "series"] = "movie"
    title: str = Field(..., min_length=1)
    year: Optional[int] = None
    meta_data: Optional[dict] = None


def _external_api_id(creator_id: str) -> str:
    return creator_id.split("-", 1)[1] if creator_id.startswith("tmdb-") else creator_id


@router.get("/platforms")
def list_platforms(db: Session = Depends(get_db)):
    return UserRepository(db).list_platforms()


@router.get("/me/platforms")
def get_my_platforms(user_id: str = Query(...), db: Session = Depends(get_db)):
    return UserRepository(db).list_user_platforms(user_id)


@router.put("/me/platforms")
def put_my_platforms(
    payload: PlatformsIn, user_id: str = Query(...), db: Session = Depends(get_db)
):
    try:
        return UserRepository(db).replace_user_platforms(user_id, payload.slugs)
    except UnknownPlatformError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/me/creators")
def get_my_creators(user_id: str = Query(...), db: Session = Depends(get_db)):
    return UserRepository(db).list_favorite_creators(user_id)


@router.post("/me/creators", status_code=201)
def post_my_creator(
    payload: FavoriteCreatorIn, user_id: str = Query(...), db: Session = Depends(get_db)
):
    try:
        return UserRepository(db).add_favorite_creator(
            user_id,
            external_api_id=_external_api_id(payload.id),
            name=payload.name,
            creator_role=payload.creator_role,
            avatar_url=payload.avatar_url,
        )
    except AlreadyExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.delete("/me/creators/{creator_id}", status_code=204)
def delete_my_creator(
    creator_id: str, user_id: str = Query(...), db: Session = Depends(get_db)
):
    try:
        UserRepository(db).remove_favorite_creator(user_id, _external_api_id(creator_id))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("/me/watched")
def get_my_watched(
    user_id: str = Query(...),
    limit: int = Query(20, ge=1, le=100),
    cursor: int | None = Query(None, description="Id of the last item seen."),
    db: Session = Depends(get_db),
):
    data, next_cursor = UserRepository(db).list_watched(user_id, limit, cursor)
    return {"data": data, "next_cursor": next_cursor}


@router.post("/me/watched", status_code=201)
def post_my_watched(
    payload: WatchedIn, user_id: str = Query(...), db: Session = Depends(get_db)
):
    try:
        return UserRepository(db).add_watched(user_id, **payload.model_dump())
    except AlreadyExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.delete("/me/watched/{item_id}", status_code=204)
def delete_my_watched(
    item_id: int, user_id: str = Query(...), db: Session = Depends(get_db)
):
    try:
        UserRepository(db).remove_watched(user_id, item_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
