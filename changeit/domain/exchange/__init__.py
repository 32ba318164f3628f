"""
Exchange bounded context: domain layer.

This module contains all domain logic for the exchange context:
- Rate resolution (direct, inverse, triangulated through the quote currency)
- Per-user balances and their non-negative invariant
- Transaction records and their status lifecycle
"""
