from types import SimpleNamespace

import pytest

from app.core.exceptions import IntegrationNotFoundError, InvalidValueError
from app.models.field_change import FieldChange
from app.models.integration import IntegrationConfig
from app.sync.field_change_repository import FieldChangeRepository
from app.sync.hooks import FieldChangeHook, FieldChangeHooks
from app.sync.integrations import IntegrationRegistry, SyncIntegrationsHelper
from app.sync.recorder import FieldChangeRecorder


class RejectIntegration(FieldChangeHook):
    def __init__(self, integration):
        self.integration = integration
        self.calls = []

    def before_field_changes(self, integration, obj):
        self.calls.append(integration)
        if integration == self.integration:
            raise InvalidValueError(f"{integration} does not accept this object")


@pytest.fixture
def registry():
    return IntegrationRegistry()


@pytest.fixture
def hooks():
    return FieldChangeHooks()


@pytest.fixture
def recorder(db, registry, hooks):
    return FieldChangeRecorder(FieldChangeRepository(db), SyncIntegrationsHelper(db, registry), hooks)


@pytest.fixture
def configure(db, registry):
    def _configure(name, objects=("contact",), enabled=True, register=True):
        if register:
            registry.register(name, objects)
        db.add(IntegrationConfig(name=name, is_published=True, sync_enabled=enabled, sync_objects=list(objects)))
        db.commit()

    return _configure


def contact(object_id=5):
    return SimpleNamespace(object_type="contact", id=object_id)


def rows(db):
    return sorted(
        (r.integration, r.object_type, r.object_id, r.column_name, r.column_type, r.column_value)
        for r in db.query(FieldChange).all()
    )


def test_records_latest_value_for_enabled_integration(db, recorder, configure):
    configure("hubspot")

    recorder.record_changes({"email": ["a@x.com", "b@x.com"]}, 5, contact())

    assert rows(db) == [("hubspot", "contact", 5, "email", "string", "b@x.com")]


def test_replaces_prior_row_for_same_column(db, recorder, configure):
    configure("hubspot")

    recorder.record_changes({"email": ["a@x.com", "b@x.com"]}, 5, contact())
    recorder.record_changes({"email": ["b@x.com", "c@x.com"]}, 5, contact())

    assert rows(db) == [("hubspot", "contact", 5, "email", "string", "c@x.com")]


def test_one_row_per_column_and_integration(db, recorder, configure):
    configure("hubspot")
    configure("salesforce")
    changes = {"email": [None, "b@x.com"], "firstname": [None, "Bo"], "points": [0, 10]}

    recorder.record_changes(changes, 5, contact())

    assert len(rows(db)) == 6
    assert {(r[0], r[3]) for r in rows(db)} == {
        (integration, column)
        for integration in ("hubspot", "salesforce")
        for column in changes
    }


def test_recording_twice_is_idempotent(db, recorder, configure):
    configure("hubspot")
    changes = {"email": ["a@x.com", "b@x.com"], "city": [None, "Tallinn"]}

    recorder.record_changes(changes, 5, contact())
    first = rows(db)
    recorder.record_changes(changes, 5, contact())

    assert rows(db) == first


def test_hook_rejection_skips_only_that_integration(db, recorder, configure, hooks):
    configure("hubspot")
    configure("salesforce")
    hook = RejectIntegration("salesforce")
    hooks.register("contact", hook)

    recorder.record_changes({"email": [None, "b@x.com"]}, 5, contact())

    assert {r[0] for r in rows(db)} == {"hubspot"}
    assert sorted(hook.calls) == ["hubspot", "salesforce"]


def test_hooks_for_other_object_types_are_not_called(db, recorder, configure, hooks):
    configure("hubspot")
    hook = RejectIntegration("hubspot")
    hooks.register("company", hook)

    recorder.record_changes({"email": [None, "b@x.com"]}, 5, contact())

    assert hook.calls == []
    assert len(rows(db)) == 1


def test_has_hooks_follows_registration(hooks):
    hook = RejectIntegration("hubspot")
    assert not hooks.has_hooks("contact")

    hooks.register("contact", hook)
    assert hooks.has_hooks("contact")
    assert not hooks.has_hooks("company")

    hooks.unregister("contact", hook)
    assert not hooks.has_hooks("contact")


def test_hooks_are_skipped_when_none_registered_for_the_type(db, registry, configure):
    class CountingHooks(FieldChangeHooks):
        def __init__(self):
            super().__init__()
            self.calls = 0

        def before_field_changes(self, integration, obj):
            self.calls += 1
            super().before_field_changes(integration, obj)

    counting = CountingHooks()
    counting.register("company", RejectIntegration("hubspot"))
    recorder = FieldChangeRecorder(FieldChangeRepository(db), SyncIntegrationsHelper(db, registry), counting)
    configure("hubspot")

    recorder.record_changes({"email": [None, "b@x.com"]}, 5, contact())

    assert counting.calls == 0
    assert rows(db) == [("hubspot", "contact", 5, "email", "string", "b@x.com")]


def test_rejection_by_every_integration_keeps_existing_rows(db, recorder, configure, hooks):
    configure("hubspot")
    recorder.record_changes({"email": [None, "a@x.com"]}, 5, contact())
    hooks.register("contact", RejectIntegration("hubspot"))

    recorder.record_changes({"email": ["a@x.com", "b@x.com"]}, 5, contact())

    assert rows(db) == [("hubspot", "contact", 5, "email", "string", "a@x.com")]


def test_nothing_recorded_without_enabled_integrations(db, recorder, configure):
    configure("hubspot", enabled=False)

    recorder.record_changes({"email": [None, "b@x.com"]}, 5, contact())

    assert rows(db) == []


def test_empty_change_set_is_a_no_op(db, recorder, configure):
    configure("hubspot")

    recorder.record_changes({}, 5, contact())

    assert rows(db) == []


def test_only_integrations_syncing_the_object_type(db, recorder, configure):
    configure("hubspot", objects=("contact",))
    configure("pipedrive", objects=("company",))

    recorder.record_changes({"email": [None, "b@x.com"]}, 5, contact())

    assert {r[0] for r in rows(db)} == {"hubspot"}


def test_replacing_columns_clears_them_for_every_integration(db, recorder, configure):
    # Rows left behind by an integration that has since been disabled
    db.add_all([
        FieldChange(integration="legacy", object_type="contact", object_id=5,
                    column_name="email", column_type="string", column_value="old@x.com"),
        FieldChange(integration="legacy", object_type="contact", object_id=5,
                    column_name="phone", column_type="string", column_value="555"),
    ])
    db.commit()
    configure("hubspot")

    recorder.record_changes({"email": [None, "b@x.com"]}, 5, contact())

    assert rows(db) == [
        ("hubspot", "contact", 5, "email", "string", "b@x.com"),
        ("legacy", "contact", 5, "phone", "string", "555"),
    ]


def test_other_objects_are_untouched(db, recorder, configure):
    configure("hubspot")

    recorder.record_changes({"email": [None, "five@x.com"]}, 5, contact(5))
    recorder.record_changes({"email": [None, "six@x.com"]}, 6, contact(6))

    assert [r[2] for r in rows(db)] == [5, 6]


def test_values_are_encoded_with_their_type(db, recorder, configure):
    configure("hubspot")

    recorder.record_changes({"points": [0, 25], "owner_id": [3, None]}, 5, contact())

    assert rows(db) == [
        ("hubspot", "contact", 5, "owner_id", "null", ""),
        ("hubspot", "contact", 5, "points", "int", "25"),
    ]


def test_unregistered_integration_propagates(db, recorder, configure):
    configure("ghost", register=False)

    with pytest.raises(IntegrationNotFoundError):
        recorder.record_changes({"email": [None, "b@x.com"]}, 5, contact())

    assert rows(db) == []


def test_recorded_rows_are_detached_from_session(db, recorder, configure):
    configure("hubspot")

    recorder.record_changes({"email": [None, "b@x.com"]}, 5, contact())

    assert not any(isinstance(instance, FieldChange) for instance in db)
