"""
Core configuration, security, database and error primitives.
"""
