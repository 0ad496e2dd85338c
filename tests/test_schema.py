"""
Tests for schema introspection, field resolution and the data models.
"""

from unittest.mock import Mock

import pytest
from conftest import Article, LegacyOrder, Misconfigured
from sqlalchemy import text

from softdelete_toolkit.config import SoftDeleteConfig
from softdelete_toolkit.soft_delete import (
    DeleteOptions,
    DeletionEvent,
    EventDispatcher,
    MissingColumnError,
    Outcome,
    RulesChecker,
    SchemaInspector,
    SoftDeleteFieldResolver,
    TableCapabilities,
    TableDescriptor,
)


@pytest.fixture
def inspector(db_session):
    return SchemaInspector(db_session)


@pytest.fixture
def resolver(inspector):
    return SoftDeleteFieldResolver(inspector)


class TestSchemaInspector:
    """Test the schema service."""

    def test_get_column(self, inspector):
        column = inspector.get_column("articles", "deleted")

        assert column is not None
        assert column["name"] == "deleted"
        assert column["nullable"] is True

    def test_missing_column(self, inspector):
        assert inspector.get_column("articles", "archived_at") is None

    def test_column_names(self, inspector):
        assert inspector.column_names("articles") == {
            "id",
            "title",
            "status",
            "deleted",
            "deleted_by",
        }

    def test_capabilities(self, inspector):
        legacy = TableDescriptor.for_model(LegacyOrder)
        article = TableDescriptor.for_model(Article)

        assert inspector.capabilities(legacy, "DEL_FLAG").has_status_flag is True
        assert inspector.capabilities(article, "DEL_FLAG").has_status_flag is False
        assert inspector.capabilities(legacy, None).has_status_flag is False

    def test_engine_bind(self, engine):
        assert "removed_at" in SchemaInspector(engine).column_names("legacy_orders")


class TestSoftDeleteFieldResolver:
    """Test resolution of the deletion marker column."""

    def test_default_field(self, resolver):
        assert resolver.resolve_field(TableDescriptor.for_model(Article)) == "deleted"

    def test_configured_field(self, resolver):
        descriptor = TableDescriptor.for_model(LegacyOrder)
        assert resolver.resolve_field(descriptor) == "removed_at"

    def test_configured_default_name(self, inspector):
        resolver = SoftDeleteFieldResolver(
            inspector, SoftDeleteConfig(default_field_name="status")
        )
        assert resolver.resolve_field(TableDescriptor.for_model(Article)) == "status"

    def test_missing_column(self, resolver):
        with pytest.raises(MissingColumnError) as exc:
            resolver.resolve_field(TableDescriptor.for_model(Misconfigured))

        assert "`archived_at` is missing from the table `misconfigured`" in str(
            exc.value
        )

    def test_missing_default_column(self, resolver):
        descriptor = TableDescriptor(table_name="misconfigured", primary_key=("id",))

        with pytest.raises(MissingColumnError) as exc:
            resolver.resolve_field(descriptor)

        assert exc.value.column == "deleted"

    def test_schema_checked_on_every_call(self, db_session, resolver):
        descriptor = TableDescriptor.for_model(Misconfigured)

        with pytest.raises(MissingColumnError):
            resolver.resolve_field(descriptor)

        db_session.execute(
            text("ALTER TABLE misconfigured ADD COLUMN archived_at DATETIME")
        )

        assert resolver.resolve_field(descriptor) == "archived_at"

    def test_inspector_consulted_each_time(self):
        inspector = Mock()
        inspector.get_column.return_value = {"name": "deleted"}
        resolver = SoftDeleteFieldResolver(inspector)
        descriptor = TableDescriptor(table_name="articles", primary_key=("id",))

        resolver.resolve_field(descriptor)
        resolver.resolve_field(descriptor)

        assert inspector.get_column.call_count == 2


class TestTableDescriptor:
    """Test the table descriptor model."""

    def test_for_model(self):
        descriptor = TableDescriptor.for_model(LegacyOrder)

        assert descriptor.table_name == "legacy_orders"
        assert descriptor.primary_key == ("region", "number")
        assert descriptor.deletion_field == "removed_at"
        assert descriptor.actor_field == "removed_by"

    def test_defaults(self):
        descriptor = TableDescriptor.for_model(Article)

        assert descriptor.deletion_field is None
        assert descriptor.actor_field == "deleted_by"

    def test_fallback_actor_field(self):
        descriptor = TableDescriptor.for_model(Article, actor_field="changed_by")
        assert descriptor.actor_field == "changed_by"

    def test_blank_deletion_field_is_unconfigured(self):
        descriptor = TableDescriptor(
            table_name="articles", primary_key=("id",), deletion_field="  "
        )
        assert descriptor.deletion_field is None

    def test_primary_key_required(self):
        with pytest.raises(ValueError):
            TableDescriptor(table_name="articles", primary_key=())


class TestOptionsAndEvents:
    """Test delete options, outcomes and dispatch."""

    def test_cascade_options(self):
        options = DeleteOptions(check_rules=False, extra={"reason": "cleanup"})
        cascaded = options.for_cascade()

        assert cascaded.primary is False
        assert cascaded.check_rules is False
        assert cascaded.extra == {"reason": "cleanup"}
        assert options.primary is True

    def test_event_not_stopped_without_outcome(self):
        event = DeletionEvent(
            name="before_delete", record=None, options=DeleteOptions()
        )

        assert event.is_stopped is False
        assert event.result is None

    def test_stop_outcome(self):
        outcome = Outcome.stop()

        assert outcome.proceed is False
        assert outcome.result is False

    def test_dispatch_order(self):
        events = EventDispatcher()
        calls = []
        events.on("before_delete", lambda event: calls.append("first"))
        events.on("before_delete", lambda event: calls.append("second"))

        event = events.dispatch("before_delete", object(), DeleteOptions())

        assert calls == ["first", "second"]
        assert event.is_stopped is False

    def test_off(self):
        events = EventDispatcher()
        listener = Mock(return_value=None)
        events.on("after_delete", listener)
        events.off("after_delete", listener)

        events.dispatch("after_delete", object(), DeleteOptions())

        listener.assert_not_called()

    def test_rules_per_operation(self):
        rules = RulesChecker()
        rules.add(lambda record, options: False, operation=RulesChecker.SAVE)

        assert rules.check(object(), RulesChecker.DELETE) is True
        assert rules.check(object(), RulesChecker.SAVE) is False

    def test_capabilities_default(self):
        assert TableCapabilities().has_status_flag is False
