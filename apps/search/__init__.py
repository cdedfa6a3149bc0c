"""Search app package.

Multi-tenant search: availability and pricing of every active property for
a stay window, computed in parallel and ranked by total price.
"""
