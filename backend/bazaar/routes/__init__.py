# Routes package init
"""
Bazaar Backend — API Routes Package
====================================

Route Inventory:
    - addresses.py: /api/addresses...        (authenticated address book)
    - payment.py:   /api/payment/...         (payment lifecycle, COD, refunds)
    - courier.py:   /api/courier/...         (providers, credentials, webhooks)
    - health.py:    GET /health              (service health check)

Routes stay thin: read the request, call a service or gateway, wrap the
result in the {success, message, data} envelope. Errors are left to the
error classifier.
"""
