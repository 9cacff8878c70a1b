"""Integration test package.

These tests exercise the SQLite repository, the FastAPI application
and the CLI end to end.  They only touch temporary directories.
"""
