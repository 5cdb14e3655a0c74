"""
Account service: registration, sessions, email verification and password recovery.
"""

__version__ = "1.0.0"
