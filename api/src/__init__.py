"""VoteMonitor API.

Authentication for observers and NGO admins, and the service composition
(cache, hashing, file storage, tokens) shared by the API endpoints.
"""

__version__ = "1.0.0"
