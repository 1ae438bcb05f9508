"""Backend package for the reading contest tracker.

This package exposes the repository, interactor and handler modules used
by the FastAPI application. It is intentionally lightweight; individual
modules contain the concrete implementations and documentation.
"""
