"""
Clinic Agenda Admin API

A FastAPI backend for a clinic scheduling application: a single administrator
authenticates with bearer tokens and manages professionals and appointments.
"""

__version__ = "1.0.0"
