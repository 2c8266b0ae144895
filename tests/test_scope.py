"""Tests for AuditScope lifecycle, mutators and error handling."""

import logging
from unittest.mock import patch

import pytest
from conftest import FixedEnvironment, Order, RecordingProvider

from audit_scope import (
    AuditConfiguration,
    AuditScope,
    ConfigurationError,
    EventCreationPolicy,
    InMemoryDataProvider,
    ProviderError,
    ScopeState,
    SerializationError,
    set_audit_disabled,
)


class TestEndToEnd:
    """Full scope round trip."""

    def test_order_status_change(self, recorder):
        """Old/new snapshots, duration and comments of a normal run."""
        order = Order(id=1, status=2)
        with AuditScope("Order:Update", lambda: order):
            order.status = -1

        _, _, event = recorder.inserts[0]
        assert event["EventType"] == "Order:Update"
        assert event["Target"]["Old"]["status"] == 2
        assert event["Target"]["New"]["status"] == -1
        assert event["Target"]["Type"] == "conftest.Order"
        assert event["Duration"] >= 0
        assert event["Comments"] == []

    def test_environment_is_captured(self, recorder, order):
        """Environment comes from the configured provider."""
        with AuditScope("Order:Update", lambda: order):
            pass

        env = recorder.inserts[0][2]["Environment"]
        assert env["UserName"] == "alice"
        assert env["MachineName"] == "build-01"
        assert env["DomainName"] == "example.org"
        assert env["Culture"] == "en_US"
        assert env["Exception"] is None
        assert env["CallingMethodName"].endswith("test_environment_is_captured")

    def test_in_place_mutation_of_nested_list(self, recorder):
        """Old snapshot is independent of later in-place mutation."""
        order = Order(id=1, status=2, lines=["a"])
        with AuditScope("Order:Update", lambda: order):
            order.lines.append("b")

        target = recorder.inserts[0][2]["Target"]
        assert target["Old"]["lines"] == ["a"]
        assert target["New"]["lines"] == ["a", "b"]

    def test_target_getter_is_reevaluated(self, recorder):
        """The getter is called again at end, so rebinding is observed."""
        holder = {"order": Order(id=1, status=2)}
        with AuditScope("Order:Replace", lambda: holder["order"]):
            holder["order"] = Order(id=2, status=7)

        target = recorder.inserts[0][2]["Target"]
        assert target["Old"]["id"] == 1
        assert target["New"]["id"] == 2

    def test_scope_without_target(self, recorder):
        """Target-less scopes omit the Target key."""
        with AuditScope("Job:Run"):
            pass

        assert "Target" not in recorder.inserts[0][2]


class TestCustomFields:
    """Test set_custom_field() and extra_fields."""

    def test_last_write_wins(self, recorder, order):
        """Writing a key twice keeps only the last value."""
        with AuditScope("Order:Update", lambda: order) as scope:
            scope.set_custom_field("K", 1)
            scope.set_custom_field("K", 2)

        event = recorder.inserts[0][2]
        assert event["K"] == 2
        assert list(event).count("K") == 1

    def test_value_is_snapshotted(self, recorder, order):
        """Mutating the value after setting it does not change the field."""
        reference = {"codes": [1]}
        with AuditScope("Order:Update", lambda: order) as scope:
            scope.set_custom_field("Reference", reference)
            reference["codes"].append(2)

        assert recorder.inserts[0][2]["Reference"] == {"codes": [1]}

    def test_extra_fields_merged_at_top_level(self, recorder, order):
        """extra_fields appear at the top level of the serialized event."""
        with AuditScope("Order:Update", lambda: order, extra_fields={"ReferenceId": "A-1"}):
            pass

        assert recorder.inserts[0][2]["ReferenceId"] == "A-1"

    def test_reserved_key_rejected(self, recorder, order):
        """Custom fields cannot shadow canonical event keys."""
        with AuditScope("Order:Update", lambda: order) as scope:
            with pytest.raises(ValueError):
                scope.set_custom_field("Target", 1)

    def test_unserializable_value(self, recorder, order):
        """A value with no structural form raises SerializationError."""
        with AuditScope("Order:Update", lambda: order) as scope:
            with pytest.raises(SerializationError) as exc_info:
                scope.set_custom_field("Callback", lambda: None)
        assert exc_info.value.path.startswith("Callback")


class TestComments:
    """Test comment()."""

    def test_comments_in_order(self, recorder, order):
        """Comments are appended in call order."""
        with AuditScope("Order:Update", lambda: order) as scope:
            scope.comment("first")
            scope.comment("status %s -> %s", 2, 3)

        assert recorder.inserts[0][2]["Comments"] == ["first", "status 2 -> 3"]

    def test_non_string_rejected(self, recorder, order):
        """Comments must be strings."""
        with AuditScope("Order:Update", lambda: order) as scope:
            with pytest.raises(TypeError):
                scope.comment(42)


class TestStateMachine:
    """Test scope state transitions."""

    def test_active_then_saved(self, recorder, order):
        """A normal scope ends in SAVED."""
        with AuditScope("Order:Update", lambda: order) as scope:
            assert scope.state == ScopeState.ACTIVE
        assert scope.state == ScopeState.SAVED

    def test_discard_is_terminal(self, recorder, order):
        """Discarded scopes stay discarded."""
        with AuditScope("Order:Update", lambda: order) as scope:
            scope.discard()
            scope.discard()
            assert scope.state == ScopeState.DISCARDED
        assert scope.state == ScopeState.DISCARDED

    def test_end_runs_once(self, recorder, order):
        """Explicit end() followed by block exit persists once."""
        with AuditScope("Order:Update", lambda: order) as scope:
            scope.end()
        scope.end()

        assert len(recorder.inserts) == 1

    def test_mutators_ignored_after_end(self, recorder, order):
        """comment/set_custom_field/save are ignored once the scope ended."""
        with AuditScope("Order:Update", lambda: order) as scope:
            pass
        scope.comment("late")
        scope.set_custom_field("Late", True)
        scope.save()
        scope.discard()

        assert scope.event.comments == []
        assert "Late" not in scope.event.custom_fields
        assert len(recorder.calls) == 1
        assert scope.state == ScopeState.SAVED

    def test_discard_after_end_does_not_change_state(self, recorder, order):
        """discard() on a saved scope is a no-op."""
        scope = AuditScope("Order:Update", lambda: order)
        scope.end()
        scope.discard()
        assert scope.state == ScopeState.SAVED

    def test_target_getter_released(self, recorder, order):
        """The scope drops its target getter once finished."""
        with AuditScope("Order:Update", lambda: order) as scope:
            pass
        assert scope._target_getter is None

    def test_end_without_context_manager(self, recorder, order):
        """end() can be called directly."""
        scope = AuditScope("Order:Update", lambda: order)
        order.status = 8
        scope.end()
        assert recorder.inserts[0][2]["Target"]["New"]["status"] == 8


class TestExceptions:
    """Test exception paths through the guarded block."""

    def test_exception_recorded_and_reraised(self, recorder, order):
        """The block's exception is stored in the event and not suppressed."""
        with pytest.raises(KeyError):
            with AuditScope("Order:Update", lambda: order):
                raise KeyError("missing")

        env = recorder.inserts[0][2]["Environment"]
        assert env["Exception"] == "KeyError: 'missing'"

    def test_discard_on_error(self, recorder, order):
        """Discarding in an except clause suppresses the save."""
        with AuditScope("Order:Update", lambda: order) as scope:
            try:
                raise ValueError("bad input")
            except ValueError:
                scope.discard()

        assert recorder.calls == []

    def test_early_return_still_saves(self, recorder, order):
        """Leaving the block with return still ends the scope."""
        def update():
            with AuditScope("Order:Update", lambda: order):
                order.status = 1
                return "done"

        assert update() == "done"
        assert len(recorder.inserts) == 1


class TestErrors:
    """Test error taxonomy."""

    def test_no_provider(self, order):
        """No configured provider raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            AuditScope("Order:Update", lambda: order)

    def test_explicit_provider_overrides_missing_default(self, order):
        """An explicit provider is enough."""
        provider = InMemoryDataProvider()
        with AuditScope("Order:Update", lambda: order, data_provider=provider):
            pass
        assert len(provider) == 1

    def test_unknown_policy(self, recorder, order):
        """An unknown policy name raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            AuditScope("Order:Update", lambda: order, creation_policy="sometimes")

    def test_unserializable_target_fails_begin(self, recorder):
        """A cyclic target fails scope creation."""
        node = {"name": "root"}
        node["self"] = node
        with pytest.raises(SerializationError):
            AuditScope("Graph:Update", lambda: node)
        assert recorder.calls == []

    def test_provider_failure_on_end(self, order):
        """Insert failures surface as ProviderError with the original error."""
        provider = RecordingProvider(fail_on="insert")
        with pytest.raises(ProviderError) as exc_info:
            with AuditScope("Order:Update", lambda: order, data_provider=provider):
                pass

        error = exc_info.value
        assert error.operation == "insert"
        assert error.provider == "RecordingProvider"
        assert isinstance(error.original, RuntimeError)
        assert error.__cause__ is error.original

    def test_provider_failure_on_begin(self, order):
        """A failing start-of-scope insert fails scope creation."""
        provider = RecordingProvider(fail_on="insert")
        with pytest.raises(ProviderError):
            AuditScope(
                "Order:Update",
                lambda: order,
                creation_policy=EventCreationPolicy.INSERT_ON_START_REPLACE_ON_END,
                data_provider=provider,
            )

    def test_provider_failure_logged(self, order, caplog):
        """Provider failures are logged before being raised."""
        provider = RecordingProvider(fail_on="insert")
        with caplog.at_level(logging.WARNING, logger="audit_scope.scope"):
            with pytest.raises(ProviderError):
                AuditScope.log("Login:Failed", data_provider=provider)
        assert "insert failed" in caplog.text

    def test_invalid_arguments(self, recorder):
        """Bad argument types are rejected."""
        with pytest.raises(TypeError):
            AuditScope("")
        with pytest.raises(TypeError):
            AuditScope("Order:Update", target_getter=Order(id=1, status=1))
        with pytest.raises(TypeError):
            AuditScope("Order:Update", extra_fields=["not", "a", "mapping"])


class TestConfigurationInjection:
    """Test explicit configuration and the kill switch."""

    def test_injected_configuration_bypasses_registry(self, recorder, order):
        """An injected configuration is used instead of the registry."""
        provider = InMemoryDataProvider()
        config = AuditConfiguration(
            data_provider=provider,
            environment_provider=FixedEnvironment(),
        )
        with AuditScope("Order:Update", lambda: order, configuration=config):
            pass

        assert recorder.calls == []
        assert len(provider) == 1

    def test_audit_disabled(self, recorder, order):
        """Disabled auditing makes no provider calls for any policy."""
        set_audit_disabled(True)
        for policy in EventCreationPolicy:
            with AuditScope("Order:Update", lambda: order, creation_policy=policy) as scope:
                scope.save()
            assert scope.event_id is None
        assert recorder.calls == []

    def test_audit_disabled_without_provider(self, order):
        """With auditing disabled a missing provider is not an error."""
        set_audit_disabled(True)
        with AuditScope("Order:Update", lambda: order) as scope:
            pass
        assert scope.state == ScopeState.SAVED


class TestLog:
    """Test AuditScope.log()."""

    def test_log_inserts_once(self, recorder):
        """log() writes one target-less event immediately."""
        event = AuditScope.log("Login:Failed", {"username": "bob"})

        assert len(recorder.inserts) == 1
        record = recorder.inserts[0][2]
        assert record["username"] == "bob"
        assert "Target" not in record
        assert event.end_date is not None


class TestCallingMethod:
    """Test calling method resolution."""

    def test_calling_method_skips_library_frames(self, recorder):
        """CallingMethodName names the user function, not library internals."""
        def place_order():
            return AuditScope.log("Order:Place")

        event = place_order()
        assert event.environment.calling_method_name.endswith("place_order")

    def test_user_name_failure_is_tolerated(self, recorder, order):
        """An unresolvable user name becomes None."""
        from audit_scope import EnvironmentInfoProvider

        env = EnvironmentInfoProvider()
        with patch("audit_scope.core.environment.getpass.getuser", side_effect=KeyError("uid")):
            assert env.user_name() is None

    def test_unknown_locale_is_tolerated(self, recorder, order):
        """An unsupported locale setting yields a culture from the environment or None."""
        with patch(
            "audit_scope.core.environment.locale.getlocale",
            side_effect=ValueError("unknown locale: UTF-8"),
        ), patch.dict("os.environ", {"LC_ALL": "", "LANG": ""}):
            from audit_scope import EnvironmentInfoProvider

            assert EnvironmentInfoProvider().culture() is None
            scope = AuditScope(
                "Order:Update",
                lambda: order,
                environment_provider=EnvironmentInfoProvider(),
            )
            scope.end()

        assert recorder.inserts[0][2]["Environment"]["Culture"] is None

    def test_rejects_invalid_environment_provider(self, recorder):
        """A per-scope environment source must be an EnvironmentInfoProvider."""
        with pytest.raises(TypeError):
            AuditScope("Order:Update", environment_provider=object())
