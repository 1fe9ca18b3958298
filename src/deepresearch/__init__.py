"""DeepResearch — research session backend.

User accounts with JWT auth, ownership-scoped research sessions,
and a server-sent-events research progress stream.
"""

__version__ = "1.0.0"
