"""
Centralized mock objects for testing.

This package provides reusable mock factories for write channels, readers
and the connection registry.
"""
