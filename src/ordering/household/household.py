"""Household aggregate — a grouped customer account orders are placed for."""

from protean.fields import String

from ordering.domain import ordering


@ordering.aggregate
class Household:
    code = String(max_length=50)
    name = String(required=True, max_length=255)
    lead_name = String(max_length=255)
    lead_phone = String(max_length=50)
    neighborhood = String(max_length=255)
    street = String(max_length=255)
    building_number = String(max_length=50)
    household_number = String(max_length=50)
