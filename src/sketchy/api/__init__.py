"""Sketchy - FastAPI REST API layer.

Modules
-------
main
    Application factory with all route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic models for request validation.
security
    Shared-secret dependency guarding the maintenance endpoints.
"""
