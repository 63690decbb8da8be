# app/api/endpoints/asset.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse, RedirectResponse
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.core.exceptions import ObjectNotFoundError
from app.services.asset_service import get_asset_path, get_published_asset, track_download

logger = logging.getLogger(__name__)

router = APIRouter(tags=["assets"])

TRACKING_COOKIE = "sync_tracking_id"
TRACKING_COOKIE_MAX_AGE = 60 * 60 * 24 * 365


def _wants_stream(value: Optional[str]) -> bool:
    # Streaming is the default; stream=0 asks for an attachment
    return value is None or value not in ("0", "")


@router.get("/asset/{slug}")
def download_asset(slug: str, request: Request, db: Session = Depends(get_db)):
    """Public download of a published asset"""
    try:
        asset = get_published_asset(db, slug)
    except ObjectNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    if slug != asset.slug:
        url = request.url.replace(path=request.app.url_path_for("download_asset", slug=asset.slug))
        return RedirectResponse(url=str(url), status_code=status.HTTP_301_MOVED_PERMANENTLY)

    tracking_id = request.cookies.get(TRACKING_COOKIE)
    query_params = dict(request.query_params)
    referer = request.headers.get("referer")

    try:
        path = get_asset_path(asset)
    except ObjectNotFoundError as e:
        logger.warning(f"File for asset {asset.id} is missing: {asset.path}")
        track_download(db, asset, query_params, code=404, tracking_id=tracking_id, referer=referer)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    download = track_download(db, asset, query_params, tracking_id=tracking_id, referer=referer)

    response = FileResponse(path, media_type=asset.mime)
    if not _wants_stream(request.query_params.get("stream")):
        response.headers["Content-Disposition"] = f'attachment;filename="{asset.original_file_name}"'
    response.set_cookie(TRACKING_COOKIE, download.tracking_id, max_age=TRACKING_COOKIE_MAX_AGE, httponly=True)
    return response
