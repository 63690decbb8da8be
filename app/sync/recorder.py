# app/sync/recorder.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence

from app.core.exceptions import InvalidValueError
from app.models.field_change import FieldChange
from app.sync.field_change_repository import FieldChangeRepository
from app.sync.hooks import FieldChangeHooks, field_change_hooks
from app.sync.integrations import SyncIntegrationsHelper
from app.sync.variable_encoder import VariableEncoder, variable_encoder

logger = logging.getLogger(__name__)

ChangeSet = Dict[str, Sequence[Any]]


class FieldChangeRecorder:
    """Replaces the pending ledger rows of an object's changed columns"""

    def __init__(
            self,
            field_change_repo: FieldChangeRepository,
            integrations_helper: SyncIntegrationsHelper,
            hooks: FieldChangeHooks = field_change_hooks,
            encoder: VariableEncoder = variable_encoder
    ):
        self.field_change_repo = field_change_repo
        self.integrations_helper = integrations_helper
        self.hooks = hooks
        self.encoder = encoder

    def record_changes(self, changes: ChangeSet, object_id: int, obj) -> None:
        if not changes:
            return

        object_id = int(object_id)
        object_type = obj.object_type
        to_persist: List[FieldChange] = []
        changed_columns = set()
        check_hooks = self.hooks.has_hooks(object_type)

        for integration in sorted(self.integrations_helper.get_enabled_integrations(object_type)):
            if check_hooks:
                try:
                    self.hooks.before_field_changes(integration, obj)
                except InvalidValueError:
                    # Do not record changes for an object and integration with an invalid value
                    continue

            modified_at = datetime.now(timezone.utc).replace(tzinfo=None)
            for column_name, (_old_value, new_value) in changes.items():
                encoded = self.encoder.encode(new_value)
                changed_columns.add(column_name)
                to_persist.append(FieldChange(
                    integration=integration,
                    object_type=object_type,
                    object_id=object_id,
                    column_name=column_name,
                    column_type=encoded.type,
                    column_value=encoded.value,
                    modified_at=modified_at,
                ))

        if not to_persist:
            return

        self.field_change_repo.delete_for_object_and_columns(object_id, object_type, changed_columns)
        self.field_change_repo.save_batch(to_persist)
        self.field_change_repo.clear()

        logger.debug(
            f"Recorded {len(to_persist)} field changes for {object_type}:{object_id} "
            f"({', '.join(sorted(changed_columns))})"
        )
