"""Ordering bounded context — Order Fulfillment for the household marketplace.

Turns paid checkout sessions into orders, drives each order through the
role-gated fulfillment lifecycle, and splits unfulfilled items into
follow-up orders at shipment. Uses CQRS: orders are persisted as state,
with domain events raised for audit.
"""

from protean.domain import Domain

ordering = Domain(name="ordering")
