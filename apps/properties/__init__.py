"""Properties app package.

Tenants, their rentable properties and the per-day calendar ledger, along
with the calendar store that locks and releases days for reservations.
"""
