# app/services/asset_service.py
import logging
import uuid
from pathlib import Path
from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ObjectNotFoundError
from app.models.asset import Asset, Download

logger = logging.getLogger(__name__)

UTM_TAGS = ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content")


def split_slug(slug: str) -> Tuple[Optional[int], str]:
    """Split an "id:alias" slug; a bare id or bare alias is accepted too"""
    identifier, _, alias = slug.partition(":")
    if identifier.isdigit():
        return int(identifier), alias
    return None, slug


def get_published_asset(db: Session, slug: str) -> Asset:
    asset_id, alias = split_slug(slug)

    query = db.query(Asset)
    if asset_id is not None:
        asset = query.filter(Asset.id == asset_id).first()
    else:
        asset = query.filter(Asset.alias == alias).first()

    if asset is None or not asset.is_published:
        raise ObjectNotFoundError("Asset", slug)

    return asset


def get_asset_path(asset: Asset) -> Path:
    upload_dir = Path(settings.ASSET_UPLOAD_DIR).resolve()
    path = (upload_dir / asset.path).resolve()
    if upload_dir not in path.parents:
        raise ObjectNotFoundError("Asset file", asset.id)
    if not path.is_file():
        raise ObjectNotFoundError("Asset file", asset.id)
    return path


def track_download(
        db: Session,
        asset: Asset,
        query_params: Dict[str, str],
        code: int = 200,
        tracking_id: Optional[str] = None,
        referer: Optional[str] = None,
        contact_id: Optional[int] = None
) -> Download:
    """Record a download with its UTM tags and bump the asset counters"""
    is_unique = tracking_id is None
    if tracking_id is None:
        tracking_id = uuid.uuid4().hex

    download = Download(
        asset_id=asset.id,
        lead_id=contact_id,
        tracking_id=tracking_id,
        code=code,
        referer=referer,
        **{tag: query_params.get(tag) for tag in UTM_TAGS}
    )
    db.add(download)

    if code == 200:
        asset.download_count = (asset.download_count or 0) + 1
        if is_unique:
            asset.unique_download_count = (asset.unique_download_count or 0) + 1

    db.commit()
    logger.debug(f"Tracked download of asset {asset.id} with code {code}")
    return download
