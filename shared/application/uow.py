"""
Unit of Work Pattern

Manages database transactions and ensures that domain events
are recorded inside the transaction and published only after
the transaction commits.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        """Commit the transaction"""
        pass

    @abstractmethod
    def rollback(self):
        """Rollback the transaction"""
        pass

    @abstractmethod
    def add_event(self, event: DomainEvent):
        """Register an event produced inside this unit of work"""
        pass


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Wraps ``transaction.atomic()``. Events added during the block are handed
    to ``outbox`` (if given) while the transaction is still open, so the
    event log commits or rolls back together with the state change, and are
    published to the message bus with ``transaction.on_commit()``.

    Usage:
        with DjangoUnitOfWork(outbox=EventLog.objects.record_many) as uow:
            reservation = ...
            uow.add_event(ReservationCreated(...))
        # Events are published after commit
    """

    def __init__(self, outbox: Optional[Callable[[List[DomainEvent]], None]] = None):
        self._events: List[DomainEvent] = []
        self._outbox = outbox
        self._transaction = None

    def __enter__(self):
        """Start database transaction"""
        self._transaction = transaction.atomic()
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Complete or rollback transaction"""
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        except BaseException as exc:
            # Commit hooks failed: let atomic() roll back with the new error
            self._transaction.__exit__(type(exc), exc, exc.__traceback__)
            raise
        self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def add_event(self, event: DomainEvent):
        self._events.append(event)

    def commit(self):
        """
        Record events and schedule their publication

        The outbox write happens inside the still-open transaction; the
        message bus only sees the events once the database commit succeeds.
        """
        events = self._events.copy()
        self._events.clear()
        logger.debug(f"Committing unit of work with {len(events)} events")

        if not events:
            return

        if self._outbox is not None:
            self._outbox(events)

        transaction.on_commit(lambda: self._publish_events(events))

    def rollback(self):
        """Rollback changes and discard events"""
        if self._events:
            logger.warning(f"Rolling back transaction, discarding {len(self._events)} events")
        self._events.clear()

    def _publish_events(self, events: List[DomainEvent]):
        """
        Publish collected events to message bus

        Called after successful transaction commit.
        """
        from shared.application.message_bus import message_bus

        logger.info(f"Publishing {len(events)} domain events after commit")

        try:
            message_bus.publish_events(events)
        except Exception as e:
            logger.error(f"Error publishing events: {e}", exc_info=True)
