"""External PMS integration package.

HTTP client for the property management system, its bearer token cache,
the adapter that turns PMS listings into authoritative availability and
pricing, and the task that pushes direct reservations back to the PMS.
"""
