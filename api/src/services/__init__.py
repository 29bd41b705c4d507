"""Business logic services.

This package contains the authentication services and the
configuration-selected cache, hashing and file storage implementations.
"""
