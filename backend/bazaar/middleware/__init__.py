# Middleware package init
"""
Bazaar Backend — Middleware Package
====================================

ASGI middleware (registered in bazaar.main, outermost first):
    Request ID → Logging → Webhook CORS → Webhook Rate Limit → CORS
    → Sanitize → Error Classifier → routes

FastAPI dependencies (attached per route):
    auth.py        authenticate_user, authorize_roles, authorize_vendor
    guards.py      validate_environment, courier provider / credentials guards
    cache_gate.py  cache_gate(key)
    webhook.py     verify_webhook_signature(provider)

Guards and gates that answer a request themselves raise ShortCircuit; every
other failure travels to the error classifier.
"""
