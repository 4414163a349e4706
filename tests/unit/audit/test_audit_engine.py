"""Unit tests for the AuditEngine.

Covers the save cycle, synthetic events, retention and failure handling
against the in-memory store.
"""

import dataclasses
import gc
from unittest.mock import MagicMock, patch

import pytest

from auditable.audit.actor import ActorResolver, StaticActorProvider
from auditable.audit.engine import AuditEngine
from auditable.audit.stores.base import AuditRecordStore
from auditable.common.exceptions import StorageError
from auditable.core.types import CycleState, SortOrder
from auditable.policy.schemas import AuditPolicy
from tests.fixtures.entities import CREATED, FakeEntity


def save(engine, entity, **changes):
    """Run one update cycle and commit the entity afterwards."""
    cycle = engine.on_pre_save(entity.set(**changes))
    outcome = engine.on_post_save(entity, cycle)
    entity.commit()
    return outcome


class TestSaveCycle:
    """Test auditing of updates."""

    def test_status_change_recorded(self, make_engine, store, user):
        engine = make_engine()

        outcome = save(engine, user, status="inactive")

        assert outcome.state == CycleState.PERSISTED
        assert outcome.written == 1
        [record] = store.all_records()
        assert record.entity_type == "users"
        assert record.entity_id == "7"
        assert record.field == "status"
        assert record.old_value == "active"
        assert record.new_value == "inactive"
        assert record.actor_id == "user_42"
        assert record.created_at == record.updated_at

    def test_excluded_field_not_recorded(self, make_engine, store, user):
        engine = make_engine(exclude=frozenset({"password"}))

        save(engine, user, password="hash2", email="b@example.com")

        assert [r.field for r in store.all_records()] == ["email"]

    def test_include_only_policy(self, make_engine, store, user):
        engine = make_engine(include_only=frozenset({"status"}))

        save(engine, user, status="inactive", name="B")

        assert [r.field for r in store.all_records()] == ["status"]

    def test_unchanged_values_write_nothing(self, make_engine, store):
        engine = make_engine()
        entity = FakeEntity(pk=3, status="active", dirty=["status"])

        outcome = save(engine, entity)

        assert outcome.state == CycleState.IDLE
        assert store.all_records() == []

    def test_insert_not_diffed(self, make_engine, store):
        engine = make_engine()
        entity = FakeEntity(pk=9, exists=False, name="new")

        cycle = engine.on_pre_save(entity)
        assert cycle.updating is False
        assert engine.on_post_save(entity, cycle).state == CycleState.IDLE
        assert store.all_records() == []

    def test_cycle_uses_values_captured_before_save(self, make_engine, store, user):
        engine = make_engine()

        cycle = engine.on_pre_save(user.set(status="inactive"))
        user.set(status="archived")
        engine.on_post_save(user, cycle)

        assert store.all_records()[0].new_value == "inactive"

    def test_cycle_is_immutable(self, make_engine, user):
        cycle = make_engine().on_pre_save(user.set(status="inactive"))

        assert cycle.state == CycleState.SNAPSHOTTING
        with pytest.raises(dataclasses.FrozenInstanceError):
            cycle.state = CycleState.PERSISTED
        with pytest.raises(TypeError):
            cycle.after["status"] = "x"

    def test_missing_actor_recorded_as_none(self, store, clock, user):
        engine = AuditEngine(
            "users",
            store,
            actor_resolver=ActorResolver([StaticActorProvider(None)]),
            clock=clock,
        )

        save(engine, user, status="inactive")

        assert store.all_records()[0].actor_id is None

    def test_records_written_in_dirty_order(self, make_engine, store):
        engine = make_engine()
        entity = FakeEntity(pk=3, a=1, b=1, dirty=["b", "a"])

        save(engine, entity, a=2, b=2)

        assert [r.field for r in store.all_records()] == ["b", "a"]


class TestAuditDisabled:
    """Test the master switch."""

    def test_nothing_recorded(self, make_engine, store, user):
        engine = make_engine(audit_enabled=False, audit_creations=True)

        cycle = engine.on_pre_save(user.set(status="inactive"))

        assert cycle is None
        assert engine.on_post_save(user, cycle).state == CycleState.IDLE
        assert engine.on_viewed(user).state == CycleState.IDLE
        assert engine.on_post_create(user).state == CycleState.IDLE
        assert engine.on_deleted(user).state == CycleState.IDLE
        assert store.all_records() == []


class TestTemporarilyDisabledFields:
    """Test disable_field_temporarily."""

    def test_disabled_for_next_save_only(self, make_engine, store, user):
        engine = make_engine()

        engine.disable_field_temporarily(user, "email")
        save(engine, user, email="b@example.com", status="inactive")
        save(engine, user, email="c@example.com")

        fields = [(r.field, r.new_value) for r in store.all_records()]
        assert fields == [("status", "inactive"), ("email", "c@example.com")]

    def test_calls_accumulate(self, make_engine, store, user):
        engine = make_engine()

        engine.disable_field_temporarily(user, ["email"])
        pending = engine.disable_field_temporarily(user, "name")
        save(engine, user, email="b@example.com", name="B", status="inactive")

        assert pending == frozenset({"email", "name"})
        assert [r.field for r in store.all_records()] == ["status"]

    def test_other_instances_unaffected(self, make_engine, store, user):
        engine = make_engine()
        other = FakeEntity(pk=8, email="x@example.com")

        engine.disable_field_temporarily(user, "email")
        save(engine, other, email="y@example.com")

        assert [r.entity_id for r in store.all_records()] == ["8"]

    def test_per_call_exclusions(self, make_engine, store, user):
        engine = make_engine()

        cycle = engine.on_pre_save(user.set(status="inactive"), disabled_fields=["status"])

        assert engine.on_post_save(user, cycle).state == CycleState.IDLE
        assert engine.policy.exclude == frozenset()

    def test_discarded_instance_does_not_leak_exclusions(self, make_engine, store):
        """Fields disabled on an instance that is never saved die with it."""
        engine = make_engine()
        discarded = FakeEntity(pk=1, status="active")
        engine.disable_field_temporarily(discarded, "status")
        del discarded
        gc.collect()

        fresh = FakeEntity(pk=2, status="active")
        outcome = save(engine, fresh, status="inactive")

        assert outcome.written == 1
        assert store.all_records()[0].entity_id == "2"
        assert len(engine._disabled) == 0


class TestSyntheticEvents:
    """Test creation, view and delete records."""

    def test_creation_ignored_by_default(self, make_engine, store):
        engine = make_engine()
        entity = FakeEntity(pk=9, exists=False, created_at=CREATED)

        assert engine.on_post_create(entity).state == CycleState.IDLE
        assert store.all_records() == []

    def test_creation_recorded_when_enabled(self, make_engine, store):
        engine = make_engine(audit_creations=True)
        entity = FakeEntity(pk=9, exists=False, created_at=CREATED)

        outcome = engine.on_post_create(entity)

        assert outcome.state == CycleState.PERSISTED
        [record] = store.all_records()
        assert record.field == "created_at"
        assert record.old_value is None
        assert record.new_value == CREATED.isoformat()

    def test_every_view_recorded(self, make_engine, store, user):
        engine = make_engine()

        engine.on_viewed(user)
        engine.on_viewed(user)

        records = store.all_records()
        assert [r.field for r in records] == ["showed_at", "showed_at"]
        assert all(r.new_value == CREATED.isoformat() for r in records)
        assert records[0].record_id != records[1].record_id

    def test_soft_delete_recorded(self, make_engine, store, user):
        engine = make_engine()
        deleted_at = CREATED.replace(hour=18)
        user.soft_deleting = True
        user.set(deleted_at=deleted_at)

        outcome = engine.on_deleted(user)

        assert outcome.state == CycleState.PERSISTED
        [record] = store.all_records()
        assert record.field == "deleted_at"
        assert record.old_value is None
        assert record.new_value == deleted_at.isoformat()

    def test_hard_delete_not_recorded(self, make_engine, store, user):
        engine = make_engine()

        assert engine.on_deleted(user).state == CycleState.IDLE
        assert store.all_records() == []

    def test_force_deleting_flag_wins(self, make_engine, store, user):
        engine = make_engine()
        user.soft_deleting = True
        user.force_deleting = True

        assert engine.on_deleted(user).state == CycleState.IDLE

    def test_soft_delete_respects_exclusions(self, make_engine, store, user):
        engine = make_engine(exclude=frozenset({"deleted_at"}))
        user.soft_deleting = True

        assert engine.on_deleted(user).state == CycleState.IDLE

    def test_post_delete_without_cycle(self, make_engine, user):
        user.soft_deleting = True
        assert make_engine().on_post_delete(user, None).state == CycleState.IDLE


class TestRetention:
    """Test history_limit handling through the engine."""

    def fill(self, engine, user, n=5):
        for i in range(n):
            save(engine, user, name=f"N{i}")

    def test_hard_cap_rejects_sixth_change(self, make_engine, store, user):
        engine = make_engine(history_limit=5, cleanup_on_limit=False)
        self.fill(engine, user)

        outcome = save(engine, user, status="inactive")

        assert outcome.state == CycleState.REJECTED
        assert outcome.written == 0
        assert store.count_records("users", 7) == 5
        assert "status" not in [r.field for r in store.all_records()]

    def test_rolling_window_evicts_oldest(self, make_engine, store, user):
        engine = make_engine(history_limit=5, cleanup_on_limit=True)
        self.fill(engine, user)
        oldest = store.all_records()[0]

        outcome = save(engine, user, status="inactive")

        assert outcome.state == CycleState.PERSISTED
        assert outcome.evicted == [oldest.record_id]
        records = store.get_records("users", 7)
        assert len(records) == 5
        assert records[0].new_value == "N1"
        assert records[-1].field == "status"

    def test_hard_cap_rejects_whole_batch(self, make_engine, store, user):
        engine = make_engine(history_limit=5)
        self.fill(engine, user)

        outcome = save(engine, user, status="inactive", email="b@example.com")

        assert outcome.written == 0
        assert store.count_records("users", 7) == 5

    def test_rolling_window_evicts_two_for_two(self, make_engine, store, user):
        engine = make_engine(history_limit=5, cleanup_on_limit=True)
        self.fill(engine, user)
        first_two = [r.record_id for r in store.all_records()[:2]]

        outcome = save(engine, user, status="inactive", email="b@example.com")

        assert outcome.evicted == first_two
        assert store.count_records("users", 7) == 5
        remaining = {r.record_id for r in store.all_records()}
        assert remaining.isdisjoint(first_two)

    def test_limit_is_per_entity(self, make_engine, store, user):
        engine = make_engine(history_limit=5)
        self.fill(engine, user)

        other = FakeEntity(pk=8, name="X")
        assert save(engine, other, name="Y").state == CycleState.PERSISTED

    def test_synthetic_events_bypass_limit(self, make_engine, store, user):
        engine = make_engine(history_limit=5)
        self.fill(engine, user)

        engine.on_viewed(user)

        assert store.count_records("users", 7) == 6


class TestStorageFailure:
    """Test that store failures surface to the caller."""

    @pytest.fixture
    def failing_store(self):
        store = MagicMock(spec=AuditRecordStore)
        store.insert_records.side_effect = StorageError("disk full", backend="file")
        return store

    def test_update_failure_propagates(self, failing_store, resolver, clock, user):
        engine = AuditEngine("users", failing_store, actor_resolver=resolver, clock=clock)
        cycle = engine.on_pre_save(user.set(status="inactive"))

        with pytest.raises(StorageError) as exc_info:
            engine.on_post_save(user, cycle)

        assert exc_info.value.details["backend"] == "file"

    def test_view_failure_propagates(self, failing_store, resolver, clock, user):
        engine = AuditEngine("users", failing_store, actor_resolver=resolver, clock=clock)

        with pytest.raises(StorageError):
            engine.on_viewed(user)

    def test_failed_insert_evicts_nothing(self, make_engine, store, user):
        engine = make_engine(history_limit=2, cleanup_on_limit=True)
        save(engine, user, name="B")
        save(engine, user, name="C")
        kept = [r.record_id for r in store.all_records()]

        with patch.object(
            store, "insert_records", side_effect=StorageError("disk full", backend="memory")
        ):
            with pytest.raises(StorageError):
                save(engine, user, status="inactive")

        assert store.count_records("users", 7) == 2
        assert [r.record_id for r in store.all_records()] == kept


class TestHistory:
    """Test per-entity history reads."""

    def test_history_in_creation_order(self, make_engine, user):
        engine = make_engine()
        save(engine, user, status="inactive")
        save(engine, user, status="active")

        history = engine.history(user)
        assert [r.new_value for r in history] == ["inactive", "active"]

        latest = engine.history(user, limit=1, order=SortOrder.DESC)
        assert [r.new_value for r in latest] == ["active"]
