"""
Shared Kernel

Base classes and utilities shared across the booking contexts:
value objects, domain events, the unit of work and the message bus.
"""
