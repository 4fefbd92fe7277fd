"""
MediCamp Backend - Services Layer
===================================

Service Inventory:
    - RegistrationLedger: registrations, payment/confirmation state machine,
      camp participant counter
    - UserService: idempotent user save, profile, role lookup
    - CampService: camp catalogue and organizer management
    - FeedbackService: participant feedback
    - PaymentService: payment intents for registered, unpaid participants
    - PaymentProvider (abstract) / StripePaymentProvider: payment collaborator
    - CircuitBreaker: fast-fail guard in front of the payment provider

Every service method takes the AsyncSession first and the resolved Caller
last; authorization is checked before any statement runs.
"""
