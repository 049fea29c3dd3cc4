"""
Directory record models.

Records are produced by the external ingestion process and are read-only
here; they are frozen so a loaded snapshot cannot be mutated by a rule.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional


@dataclass(frozen=True)
class Subject:
    """A person known to the facility, keyed by federal id."""
    fedid: str
    proposals: FrozenSet[int] = field(default_factory=frozenset)
    sessions: FrozenSet[str] = field(default_factory=frozenset)
    permissions: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class Session:
    """A visit to a beamline within a proposal."""
    session_id: str
    proposal_number: int
    visit_number: int
    beamline: str


@dataclass(frozen=True)
class Proposal:
    """A proposal and its visits, keyed by visit number as text."""
    number: int
    sessions: Dict[str, str] = field(default_factory=dict)

    def session_for_visit(self, visit_number: int) -> Optional[str]:
        return self.sessions.get(str(visit_number))
