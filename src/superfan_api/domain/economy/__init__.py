"""Pure economy rules: status tiers, spending power, pricing guardrails and reserves.

Nothing in this package touches the database; the services in
``superfan_api.services.points`` persist what these modules compute.
"""
