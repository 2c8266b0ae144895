"""AuditScope - Scoped audit tracking.

An AuditScope wraps one unit of work. It snapshots a target when it is
created, lets the caller annotate the event while the work runs, snapshots
the target again when the block exits, and hands the event to a data
provider according to its creation policy.

Lifecycle:

    ACTIVE ──discard()──────────────► DISCARDED   (no further persistence)
       │
       └──end() / block exit───────► SAVED

    begin  : environment, start_date, target.old, extra fields,
             ON_SCOPE_CREATED actions, start-of-scope insert (policy)
    end    : end_date, target.new, ON_EVENT_SAVING actions,
             end-of-scope insert/update (policy)

Basic Usage (Sync):
    >>> with AuditScope("Order:Update", lambda: order) as scope:
    ...     order.status = -1
    ...     scope.comment("cancelled by customer")

Basic Usage (Async):
    >>> async with await AuditScope.create_async("Order:Update", lambda: order) as scope:
    ...     await cancel(order)

Manual Saving:
    >>> with AuditScope("Batch:Import", lambda: batch,
    ...                 creation_policy=EventCreationPolicy.MANUAL) as scope:
    ...     for chunk in chunks:
    ...         batch.process(chunk)
    ...         scope.save()   # insert first, update afterwards

Scopes are not thread-safe: each scope belongs to the one operation that
created it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable, Optional, Union

from audit_scope.config import AuditConfiguration, get_configuration
from audit_scope.core.environment import EnvironmentInfoProvider
from audit_scope.core.snapshot import snapshot, type_name
from audit_scope.providers.base import AuditDataProvider
from audit_scope.services.actions import CustomActionManager
from audit_scope.types import (
    RESERVED_EVENT_KEYS,
    ActionType,
    AuditEvent,
    AuditTarget,
    ConfigurationError,
    EventCreationPolicy,
    ProviderError,
    ScopeState,
    SerializationError,
    resolve_policy,
)

logger = logging.getLogger(__name__)

TargetGetter = Callable[[], Any]


class AuditScope:
    """Tracks one unit of work and persists it as an AuditEvent.

    Creating the scope performs the begin step; leaving the ``with`` block
    (normally or through an exception) performs the end step exactly once.

    After the scope has left ACTIVE, comment(), set_custom_field() and
    save() are ignored, and discard() and end() are no-ops.

    Args:
        event_type: Operation kind, e.g. "Order:Update"
        target_getter: Zero-argument callable returning the object to track.
            Called at begin and at end. Released once the scope finishes.
        extra_fields: Custom fields to add before any custom action runs
        creation_policy: Overrides the configured default policy
        data_provider: Overrides the configured default provider
        configuration: Use this configuration instead of the process-wide one
        environment_provider: Overrides the configured environment source

    Raises:
        ConfigurationError: If no data provider can be resolved
        SerializationError: If the target or an extra field cannot be snapshotted
        ActionError: If an ON_SCOPE_CREATED action fails
        ProviderError: If the start-of-scope insert fails
    """

    def __init__(
        self,
        event_type: str,
        target_getter: Optional[TargetGetter] = None,
        extra_fields: Optional[Mapping[str, Any]] = None,
        creation_policy: Optional[Union[EventCreationPolicy, str]] = None,
        data_provider: Optional[AuditDataProvider] = None,
        configuration: Optional[AuditConfiguration] = None,
        environment_provider: Optional[EnvironmentInfoProvider] = None,
    ):
        self._begin(
            event_type,
            target_getter,
            extra_fields,
            creation_policy,
            data_provider,
            configuration,
            environment_provider,
        )
        if self._start_inserts():
            self._write(insert=True)

    @classmethod
    async def create_async(
        cls,
        event_type: str,
        target_getter: Optional[TargetGetter] = None,
        extra_fields: Optional[Mapping[str, Any]] = None,
        creation_policy: Optional[Union[EventCreationPolicy, str]] = None,
        data_provider: Optional[AuditDataProvider] = None,
        configuration: Optional[AuditConfiguration] = None,
        environment_provider: Optional[EnvironmentInfoProvider] = None,
    ) -> AuditScope:
        """Create a scope whose start-of-scope insert uses the provider's async API.

        Example:
            >>> async with await AuditScope.create_async("Order:Update", lambda: order):
            ...     ...
        """
        scope = cls.__new__(cls)
        scope._begin(
            event_type,
            target_getter,
            extra_fields,
            creation_policy,
            data_provider,
            configuration,
            environment_provider,
        )
        if scope._start_inserts():
            await scope._write_async(insert=True)
        return scope

    @classmethod
    def log(
        cls,
        event_type: str,
        extra_fields: Optional[Mapping[str, Any]] = None,
        data_provider: Optional[AuditDataProvider] = None,
        configuration: Optional[AuditConfiguration] = None,
    ) -> AuditEvent:
        """Record a single target-less event immediately.

        Example:
            >>> AuditScope.log("Login:Failed", {"username": "alice"})
        """
        scope = cls(
            event_type,
            extra_fields=extra_fields,
            creation_policy=EventCreationPolicy.INSERT_ON_END,
            data_provider=data_provider,
            configuration=configuration,
        )
        scope.end()
        return scope.event

    # =========================================================================
    # Begin
    # =========================================================================

    def _begin(
        self,
        event_type: str,
        target_getter: Optional[TargetGetter],
        extra_fields: Optional[Mapping[str, Any]],
        creation_policy: Optional[Union[EventCreationPolicy, str]],
        data_provider: Optional[AuditDataProvider],
        configuration: Optional[AuditConfiguration],
        environment_provider: Optional[EnvironmentInfoProvider],
    ) -> None:
        if not isinstance(event_type, str) or not event_type:
            raise TypeError("event_type must be a non-empty string")
        if target_getter is not None and not callable(target_getter):
            raise TypeError("target_getter must be a zero-argument callable")
        if extra_fields is not None and not isinstance(extra_fields, Mapping):
            raise TypeError("extra_fields must be a mapping")
        if environment_provider is not None and not isinstance(
            environment_provider, EnvironmentInfoProvider
        ):
            raise TypeError("environment_provider must be an EnvironmentInfoProvider")

        config = configuration if configuration is not None else get_configuration()
        self._disabled = config.audit_disabled

        if creation_policy is None:
            self._creation_policy = config.creation_policy
        else:
            try:
                self._creation_policy = resolve_policy(creation_policy)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e

        self._data_provider = data_provider if data_provider is not None else config.data_provider
        if self._data_provider is None and not self._disabled:
            raise ConfigurationError(
                "no data provider configured; call set_default_provider() "
                "or pass data_provider"
            )

        self._actions = CustomActionManager(config.custom_actions)
        self._target_getter = target_getter
        self._event_id: Any = None
        self._state = ScopeState.ACTIVE
        self._ended = False

        if environment_provider is None:
            environment_provider = config.environment_provider
        environment = environment_provider.collect()
        self._event = AuditEvent(event_type=event_type, environment=environment)

        if target_getter is not None:
            target = target_getter()
            self._event.target = AuditTarget(type=type_name(target), old=snapshot(target))

        if extra_fields:
            for key, value in extra_fields.items():
                self._set_field(key, value)

        logger.debug(
            f"Audit scope started: {event_type} "
            f"(policy={self._creation_policy.value}, provider={self._provider_name})"
        )
        self._actions.dispatch(ActionType.ON_SCOPE_CREATED, self)

    def _start_inserts(self) -> bool:
        return self._creation_policy.inserts_on_start and self._state is ScopeState.ACTIVE

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def event(self) -> AuditEvent:
        """The event owned by this scope."""
        return self._event

    @property
    def event_type(self) -> str:
        return self._event.event_type

    @property
    def event_id(self) -> Any:
        """Id from the latest insert (None until something was inserted)."""
        return self._event_id

    @property
    def state(self) -> ScopeState:
        return self._state

    @property
    def creation_policy(self) -> EventCreationPolicy:
        return self._creation_policy

    @property
    def data_provider(self) -> Optional[AuditDataProvider]:
        return self._data_provider

    @property
    def is_discarded(self) -> bool:
        return self._state is ScopeState.DISCARDED

    @property
    def _provider_name(self) -> str:
        if self._data_provider is None:
            return "none"
        return self._data_provider.provider_name

    # =========================================================================
    # Mutators
    # =========================================================================

    def set_custom_field(self, key: str, value: Any) -> None:
        """Snapshot value and store it under key, replacing any previous value.

        Raises:
            SerializationError: If value cannot be snapshotted
            ValueError: If key collides with a canonical event key
        """
        if not self._accepts("set_custom_field"):
            return
        self._set_field(key, value)

    def comment(self, text: str, *args: Any) -> None:
        """Append a comment. Extra args are %-formatted into text, as in logging."""
        if not isinstance(text, str):
            raise TypeError("comment text must be a string")
        if not self._accepts("comment"):
            return
        self._event.comments.append(text % args if args else text)

    def discard(self) -> None:
        """Suppress all future persistence for this scope.

        Persistence that already happened (a start-of-scope insert) is
        not retracted.
        """
        if self._state is not ScopeState.ACTIVE:
            return
        self._state = ScopeState.DISCARDED
        self._target_getter = None
        logger.debug(f"Audit scope discarded: {self.event_type}")

    def _set_field(self, key: str, value: Any) -> None:
        if not isinstance(key, str) or not key:
            raise TypeError("custom field key must be a non-empty string")
        if key in RESERVED_EVENT_KEYS:
            raise ValueError(f"custom field key {key!r} is reserved")
        try:
            self._event.custom_fields[key] = snapshot(value)
        except SerializationError as e:
            raise SerializationError(f"{key}{e.path[1:]}", e.reason) from e

    def _accepts(self, operation: str) -> bool:
        if self._state is ScopeState.ACTIVE:
            return True
        logger.debug(f"{operation}() ignored on {self._state.value} scope {self.event_type}")
        return False

    # =========================================================================
    # Save / End
    # =========================================================================

    def save(self) -> None:
        """Persist the event now: insert on first save, update afterwards.

        This is the only persistence path under MANUAL and an explicit
        override under the other policies.

        Raises:
            SerializationError: If the target cannot be snapshotted
            ActionError: If an ON_EVENT_SAVING action fails
            ProviderError: If the provider fails
        """
        if self._prepare_save():
            self._write(insert=False)

    async def save_async(self) -> None:
        """Async variant of save()."""
        if self._prepare_save():
            await self._write_async(insert=False)

    def end(self) -> None:
        """Finish the scope. Runs once; later calls do nothing."""
        if self._ended:
            return
        self._ended = True
        try:
            if self._prepare_end():
                self._write(insert=self._end_inserts())
        finally:
            self._finish()

    async def end_async(self) -> None:
        """Async variant of end()."""
        if self._ended:
            return
        self._ended = True
        try:
            if self._prepare_end():
                await self._write_async(insert=self._end_inserts())
        finally:
            self._finish()

    def _prepare_save(self) -> bool:
        if self._state is not ScopeState.ACTIVE:
            if self._state is ScopeState.DISCARDED:
                logger.warning(f"save() ignored: scope {self.event_type} was discarded")
            else:
                logger.debug(f"save() ignored on ended scope {self.event_type}")
            return False
        self._end_event()
        return self._dispatch_saving()

    def _prepare_end(self) -> bool:
        if self._state is not ScopeState.ACTIVE:
            return False
        self._end_event()
        if not self._creation_policy.saves_on_end:
            return False
        return self._dispatch_saving()

    def _dispatch_saving(self) -> bool:
        self._actions.dispatch(ActionType.ON_EVENT_SAVING, self)
        if self._state is ScopeState.DISCARDED:
            # Discarded events never carry an after-snapshot
            if self._event.target is not None:
                self._event.target.new = None
            return False
        return True

    def _end_inserts(self) -> bool:
        return self._creation_policy is EventCreationPolicy.INSERT_ON_START_INSERT_ON_END

    def _end_event(self) -> None:
        self._event.end_date = datetime.now().astimezone()
        if self._target_getter is not None and self._event.target is not None:
            self._event.target.new = snapshot(self._target_getter())

    def _finish(self) -> None:
        if self._state is ScopeState.ACTIVE:
            self._state = ScopeState.SAVED
        self._target_getter = None
        logger.debug(
            f"Audit scope ended: {self.event_type} "
            f"(state={self._state.value}, event_id={self._event_id})"
        )

    # =========================================================================
    # Provider calls
    # =========================================================================

    def _write(self, insert: bool) -> None:
        if self._disabled:
            return
        if insert or self._event_id is None:
            self._event_id = self._call("insert", self._data_provider.insert_event, self._event)
        else:
            self._call("update", self._data_provider.update_event, self._event_id, self._event)

    async def _write_async(self, insert: bool) -> None:
        if self._disabled:
            return
        if insert or self._event_id is None:
            self._event_id = await self._call_async(
                "insert", self._data_provider.insert_event_async, self._event
            )
        else:
            await self._call_async(
                "update", self._data_provider.update_event_async, self._event_id, self._event
            )

    def _call(self, operation: str, method: Callable[..., Any], *args: Any) -> Any:
        try:
            result = method(*args)
        except ProviderError:
            raise
        except Exception as e:
            logger.warning(f"{self._provider_name} {operation} failed for {self.event_type}: {e}")
            raise ProviderError(operation, self._provider_name, e) from e
        self._log_write(operation, result)
        return result

    async def _call_async(self, operation: str, method: Callable[..., Any], *args: Any) -> Any:
        try:
            result = await method(*args)
        except ProviderError:
            raise
        except Exception as e:
            logger.warning(f"{self._provider_name} {operation} failed for {self.event_type}: {e}")
            raise ProviderError(operation, self._provider_name, e) from e
        self._log_write(operation, result)
        return result

    def _log_write(self, operation: str, result: Any) -> None:
        event_id = result if operation == "insert" else self._event_id
        logger.debug(f"{self._provider_name} {operation} {self.event_type} -> {event_id}")

    # =========================================================================
    # Context manager protocol
    # =========================================================================

    def __enter__(self) -> AuditScope:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._record_exception(exc_type, exc_val)
        self.end()

    async def __aenter__(self) -> AuditScope:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self._record_exception(exc_type, exc_val)
        await self.end_async()

    def _record_exception(self, exc_type, exc_val) -> None:
        if exc_type is None or self._state is not ScopeState.ACTIVE:
            return
        self._event.environment.exception = f"{exc_type.__name__}: {exc_val}"

    def __repr__(self) -> str:
        return (
            f"AuditScope(event_type={self.event_type!r}, state={self._state.value}, "
            f"policy={self._creation_policy.value}, event_id={self._event_id!r})"
        )


__all__ = ["AuditScope", "TargetGetter"]
