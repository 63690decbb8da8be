# app/api/v1/endpoints/integrations.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_active_user
from app.core.db import get_db
from app.models.field_change import FieldChange
from app.models.integration import IntegrationConfig
from app.models.user import User
from app.sync.integrations import integration_registry
from app.sync.variable_encoder import EncodedValue, variable_encoder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations", tags=["integrations"])


@router.get("")
def list_integrations(
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_active_user)
):
    configs = {config.name: config for config in db.scalars(select(IntegrationConfig))}
    names = sorted(set(configs) | integration_registry.names())

    return {
        "integrations": [
            {
                "name": name,
                "registered": name in integration_registry.names(),
                "isPublished": bool(configs[name].is_published) if name in configs else False,
                "syncEnabled": bool(configs[name].sync_enabled) if name in configs else False,
                "syncObjects": (configs[name].sync_objects or []) if name in configs else [],
            }
            for name in names
        ]
    }


@router.get("/{name}/field-changes")
def get_field_changes(
        name: str,
        object_type: Optional[str] = Query(None),
        object_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_active_user)
):
    """Pending ledger rows of an integration, with values decoded"""
    if name not in integration_registry.names():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Integration {name} not found")

    query = select(FieldChange).where(FieldChange.integration == name)
    if object_type is not None:
        query = query.where(FieldChange.object_type == object_type)
    if object_id is not None:
        query = query.where(FieldChange.object_id == object_id)
    query = query.order_by(FieldChange.object_type, FieldChange.object_id, FieldChange.column_name)

    changes = []
    for change in db.scalars(query):
        row = change.to_dict()
        row["decoded_value"] = variable_encoder.decode(EncodedValue(change.column_type, change.column_value))
        changes.append(row)

    return {"integration": name, "total": len(changes), "changes": changes}
