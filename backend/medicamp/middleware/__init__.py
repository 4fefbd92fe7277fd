"""
MediCamp Backend - Middleware Package
=======================================

Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route
    Responses pass back through the chain in reverse order, so the request id
    header and the access log line both see the final status code.
"""
