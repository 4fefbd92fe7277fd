"""
MediCamp Backend - Security Package
=====================================

    tokens.py        Session token issue/verify and the cookie that carries it
    policy.py        Caller identity and the single authorization check
    dependencies.py  FastAPI dependencies resolving the caller per request
"""
