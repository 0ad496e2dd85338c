"""
Event dispatch and rules checking around deletes.

Listeners are plain callables receiving a ``DeletionEvent``. A before-delete
listener may return an ``Outcome`` with ``proceed=False`` to cancel the
delete; the remaining listeners are then skipped.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from .models import DeleteOptions, DeletionEvent, Outcome

logger = logging.getLogger(__name__)

Listener = Callable[[DeletionEvent], Optional[Outcome]]
Rule = Callable[[Any, DeleteOptions], bool]


class EventDispatcher:
    """Dispatches named notifications to registered listeners."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, event_name: str, listener: Listener) -> Listener:
        """Register a listener; returns it so this can be used as a decorator."""
        self._listeners.setdefault(event_name, []).append(listener)
        return listener

    def off(self, event_name: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_name, [])
        if listener in listeners:
            listeners.remove(listener)

    def listeners(self, event_name: str) -> List[Listener]:
        return list(self._listeners.get(event_name, []))

    def dispatch(
        self, event_name: str, record: Any, options: DeleteOptions
    ) -> DeletionEvent:
        """
        Notify every listener of an event until one stops it.

        Args:
            event_name: Name of the event
            record: Record the event is about
            options: Options of the operation

        Returns:
            The dispatched event, carrying the stopping outcome if any
        """
        event = DeletionEvent(name=event_name, record=record, options=options)

        for listener in self.listeners(event_name):
            outcome = listener(event)
            if outcome is not None and not outcome.proceed:
                event.outcome = outcome
                logger.debug(
                    f"{event_name} stopped by {getattr(listener, '__name__', listener)}"
                )
                break

        return event


class RulesChecker:
    """
    Domain rules evaluated before an operation.

    Rules are registered per operation (``"delete"``, ``"save"``) and must all
    pass for the operation to proceed.
    """

    DELETE = "delete"
    SAVE = "save"

    def __init__(self) -> None:
        self._rules: Dict[str, List[Rule]] = {}

    def add(self, rule: Rule, operation: str = DELETE) -> Rule:
        self._rules.setdefault(operation, []).append(rule)
        return rule

    def check(
        self, record: Any, operation: str, options: Optional[DeleteOptions] = None
    ) -> bool:
        """Return True when every rule for the operation passes."""
        options = options or DeleteOptions()
        for rule in self._rules.get(operation, []):
            if not rule(record, options):
                logger.info(
                    f"Rule {getattr(rule, '__name__', rule)} rejected {operation} "
                    f"of {record.__class__.__name__}"
                )
                return False
        return True
