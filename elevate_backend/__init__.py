"""
Backend package for the Elevate Scholar API.

This package provides a FastAPI application for listing scholarships,
collecting applications and reviews, managing user roles and taking
application-fee payments, with store, identity and payment abstractions
that have in-memory stand-ins for local runs and tests.
"""
