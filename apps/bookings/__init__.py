"""Bookings app package.

Quotes, reservations and guests: the pricing calculator, the availability
checker, the quote service and the reservation state machine. Calendar days
are locked and released through the properties app's calendar store, so a
stay can never be booked twice.
"""
