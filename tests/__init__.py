"""Test suite for the conference review platform.

Unit tests cover the aggregation rule, the lifecycle engine, reviewer
pools and the supporting services; integration tests exercise the
SQLite repository, the HTTP API and the CLI.  Run `pytest` from the
project root.
"""
