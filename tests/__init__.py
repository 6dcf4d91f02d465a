"""Test package marker for the mailreader suites.

The file exposes no symbols; ``tests/unit`` and ``tests/e2e`` hold the tests
and ``tests/data`` the canned configuration.
"""
