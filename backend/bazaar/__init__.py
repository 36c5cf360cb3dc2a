"""
Bazaar Backend — Application Package
=====================================

What: Marketplace backend covering payments, courier-provider integration,
      customer account data and user addresses.

Layers:

    ┌─────────────────────────────────────┐
    │   Middleware (sanitize, log, CORS)  │  ← runs on every request
    ├─────────────────────────────────────┤
    │   Routes + guards (dependencies)    │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services / gateways               │  ← store + upstream calls
    ├─────────────────────────────────────┤
    │   Models & Schemas                  │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘

Every failure that a guard does not answer directly ends up in the error
classifier (bazaar.middleware.errors), the single place that turns
exceptions into JSON envelopes.
"""

__version__ = "1.0.0"
