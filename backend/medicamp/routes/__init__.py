"""
MediCamp Backend - API Routes Package
=======================================

Route Inventory:
    - auth.py:           POST /jwt, GET /logout
    - users.py:          /users/{email} save, read, profile patch, role
    - camps.py:          /camps catalogue, organizer management, participant
                         counter, registration, withdrawal, payment confirmation
    - registrations.py:  /registrations participant history and organizer
                         administration
    - payments.py:       POST /payments/intent
    - feedback.py:       /feedback submit and list
    - health.py:         GET /health

Routes stay thin: resolve the caller, call one service method, shape the
HTTP response. Authorization and invariants live in the services.
"""
