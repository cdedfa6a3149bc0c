from django.apps import AppConfig


class PmsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.pms"
    label = "pms"
    verbose_name = "External PMS"

    def ready(self):
        from apps.bookings.domain.events import ReservationCancelled, ReservationConfirmed
        from shared.application.message_bus import message_bus

        from .handlers import cancel_pushed_reservation, push_confirmed_reservation

        message_bus.register_event_handler(ReservationConfirmed, push_confirmed_reservation)
        message_bus.register_event_handler(ReservationCancelled, cancel_pushed_reservation)
