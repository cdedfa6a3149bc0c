"""Tests for the unit of work and the message bus."""

from __future__ import annotations

from dataclasses import dataclass
from unittest import mock

from django.test import TestCase

from shared.application.message_bus import MessageBus
from shared.application.uow import DjangoUnitOfWork
from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class SomethingHappened(DomainEvent):
    event_type = "test.something_happened"

    value: int = 0

    def payload(self) -> dict:
        return {"value": self.value}


class UnitOfWorkTests(TestCase):
    def test_outbox_runs_inside_transaction_and_publish_waits_for_commit(self) -> None:
        outbox = mock.Mock()
        event = SomethingHappened(value=1)

        with mock.patch("shared.application.message_bus.message_bus.publish_events") as publish:
            with self.captureOnCommitCallbacks(execute=False) as callbacks:
                with DjangoUnitOfWork(outbox=outbox) as uow:
                    uow.add_event(event)

            outbox.assert_called_once_with([event])
            publish.assert_not_called()
            self.assertEqual(len(callbacks), 1)

            callbacks[0]()
            publish.assert_called_once_with([event])

    def test_exception_discards_events(self) -> None:
        outbox = mock.Mock()

        with self.captureOnCommitCallbacks() as callbacks:
            with self.assertRaises(RuntimeError):
                with DjangoUnitOfWork(outbox=outbox) as uow:
                    uow.add_event(SomethingHappened())
                    raise RuntimeError("boom")

        outbox.assert_not_called()
        self.assertEqual(callbacks, [])

    def test_event_serialisation(self) -> None:
        data = SomethingHappened(value=7, tenant_id=3).to_dict()
        self.assertEqual(data["event_type"], "test.something_happened")
        self.assertEqual(data["tenant_id"], 3)
        self.assertEqual(data["data"], {"value": 7})


class MessageBusTests(TestCase):
    def test_handler_errors_do_not_stop_other_handlers(self) -> None:
        bus = MessageBus()
        failing = mock.Mock(side_effect=ValueError("handler failed"))
        succeeding = mock.Mock()
        bus.register_event_handler(SomethingHappened, failing)
        bus.register_event_handler(SomethingHappened, succeeding)

        event = SomethingHappened()
        bus.publish_events([event])

        failing.assert_called_once_with(event)
        succeeding.assert_called_once_with(event)

    def test_registration_is_idempotent(self) -> None:
        bus = MessageBus()
        handler = mock.Mock()
        bus.register_event_handler(SomethingHappened, handler)
        bus.register_event_handler(SomethingHappened, handler)
        self.assertEqual(bus.handlers_for(SomethingHappened), [handler])
