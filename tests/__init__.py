"""
Test suite for the Clinic Agenda Admin API.

Contains unit tests for the authentication core and integration tests for the
HTTP routes.
"""
