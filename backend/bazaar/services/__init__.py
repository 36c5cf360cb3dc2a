# Services package init
"""
Bazaar Backend — Services Layer
================================

What:  Business logic between the routes (HTTP) and the database / upstream
       providers.
How:   Services are stateless; the request's AsyncSession is passed to every
       call. Collaborators with connections of their own (PaymentGateway) are
       built by create_app() and read from app.state.

Service Inventory:
    - AddressService: a user's delivery addresses and the default address
    - CourierService: active courier providers and credentials
    - PaymentGateway (abstract) / HttpPaymentGateway: payment provider calls
"""
