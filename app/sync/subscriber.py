# app/sync/subscriber.py
import logging
from typing import Any, Callable, Dict

from app.core import events
from app.models.company import OBJECT_COMPANY
from app.models.contact import OBJECT_CONTACT
from app.sync.field_change_repository import FieldChangeRepository
from app.sync.integrations import SyncIntegrationsHelper
from app.sync.object_mapping_repository import ObjectMappingRepository
from app.sync.recorder import FieldChangeRecorder

logger = logging.getLogger(__name__)

DNC_FIELD_PREFIX = "mautic_internal_dnc_"


def extract_contact_changes(changes: Dict[str, Any]) -> Dict[str, Dict[str, list]]:
    """Split contact changes into field changes and do-not-contact changes"""
    fields = dict(changes.get("fields", {}))

    if changes.get("owner"):
        # Force record of owner change if present in changelist
        fields["owner_id"] = changes["owner"]

    if changes.get("points"):
        # Points are synced like a custom field
        fields["points"] = changes["points"]

    dnc = {}
    for channel, change in changes.get("dnc_channel_status", {}).items():
        dnc[f"{DNC_FIELD_PREFIX}{channel}"] = [change.get("old_reason") or "", change["reason"]]

    return {"fields": fields, "dnc": dnc}


def extract_company_changes(changes: Dict[str, Any]) -> Dict[str, Dict[str, list]]:
    fields = dict(changes.get("fields", {}))

    if changes.get("owner"):
        fields["owner_id"] = changes["owner"]

    return {"fields": fields}


CHANGE_EXTRACTORS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Dict[str, list]]]] = {
    OBJECT_CONTACT: extract_contact_changes,
    OBJECT_COMPANY: extract_company_changes,
}


class FieldChangeSubscriber:
    """Keeps the field change ledger in step with contact and company lifecycle events"""

    def __init__(
            self,
            recorder: FieldChangeRecorder,
            field_change_repo: FieldChangeRepository,
            object_mapping_repo: ObjectMappingRepository,
            integrations_helper: SyncIntegrationsHelper
    ):
        self.recorder = recorder
        self.field_change_repo = field_change_repo
        self.object_mapping_repo = object_mapping_repo
        self.integrations_helper = integrations_helper

    @staticmethod
    def get_subscribed_events() -> Dict[str, tuple]:
        return {
            events.CONTACT_POST_SAVE: ("on_contact_post_save", 0),
            events.CONTACT_POST_DELETE: ("on_contact_post_delete", 255),
            events.COMPANY_POST_SAVE: ("on_company_post_save", 0),
            events.COMPANY_POST_DELETE: ("on_company_post_delete", 255),
            events.CONTACT_COMPANY_CHANGE: ("on_contact_company_change", 128),
        }

    def _should_track(self, obj, context: events.SyncContext) -> bool:
        if context.suppress_change_tracking:
            # Don't track changes just made by an active sync
            return False

        # Only track if an integration is syncing this object type
        return self.integrations_helper.has_object_sync_enabled(obj.object_type)

    def _record_object_changes(self, obj) -> None:
        extracted = CHANGE_EXTRACTORS[obj.object_type](obj.get_changes(include_past=True))
        for group in ("fields", "dnc"):
            if extracted.get(group):
                self.recorder.record_changes(extracted[group], obj.id, obj)

    def on_contact_post_save(self, event: events.ContactEvent) -> None:
        contact = event.contact
        if contact.is_anonymous:
            # Do not track visitor changes
            return

        if not self._should_track(contact, event.context):
            return

        logger.debug(f"Recording changes of {'new' if event.is_new else 'existing'} contact {contact.id}")
        self._record_object_changes(contact)

    def on_company_post_save(self, event: events.CompanyEvent) -> None:
        if not self._should_track(event.company, event.context):
            return

        logger.debug(f"Recording changes of {'new' if event.is_new else 'existing'} company {event.company.id}")
        self._record_object_changes(event.company)

    def on_contact_post_delete(self, event: events.ContactEvent) -> None:
        self._delete_object(event.deleted_id, OBJECT_CONTACT)

    def on_company_post_delete(self, event: events.CompanyEvent) -> None:
        self._delete_object(event.deleted_id, OBJECT_COMPANY)

    def _delete_object(self, object_id: int, object_type: str) -> None:
        # No enablement check: rows may predate a configuration change
        self.field_change_repo.delete_for_object(int(object_id), object_type)
        self.object_mapping_repo.delete_for_object(int(object_id), object_type)
        logger.info(f"Removed sync ledger entries for deleted {object_type}:{object_id}")

    def on_contact_company_change(self, event: events.ContactCompanyChangeEvent) -> None:
        contact = event.contact
        logger.debug(
            f"Contact {contact.id} {'added to' if event.added else 'removed from'} company {event.company.id}"
        )

        # Only the latest company is recorded, never the company it was changed from
        changes = {"company": ["", contact.company]}

        self.recorder.record_changes(changes, contact.id, contact)


def build_dispatcher(db) -> events.EventDispatcher:
    """Event dispatcher with the ledger subscriber bound to a session"""
    field_change_repo = FieldChangeRepository(db)
    integrations_helper = SyncIntegrationsHelper(db)
    subscriber = FieldChangeSubscriber(
        FieldChangeRecorder(field_change_repo, integrations_helper),
        field_change_repo,
        ObjectMappingRepository(db),
        integrations_helper,
    )

    dispatcher = events.EventDispatcher()
    dispatcher.add_subscriber(subscriber)
    return dispatcher
