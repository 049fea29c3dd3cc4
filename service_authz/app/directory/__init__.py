"""
Facility directory package: read-only subject, session and proposal records.
"""

from .index import DirectoryIndex, InMemoryDirectory
from .models import Proposal, Session, Subject

__all__ = ["DirectoryIndex", "InMemoryDirectory", "Proposal", "Session", "Subject"]
