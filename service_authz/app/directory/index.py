"""
Directory index access.

The facility directory (subjects, sessions, proposals) is populated by an
external ingestion job. The authorization rules consume it through the
read-only DirectoryIndex interface; a lookup that finds nothing returns
None rather than raising.
"""

import json
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Dict, Any, Iterable, List, Mapping, Optional

from shared.errors import ConfigurationError
from shared.logging import get_logger
from .models import Proposal, Session, Subject

logger = get_logger("authz.directory")


class DirectoryIndex(ABC):
    """Read interface over the facility directory."""

    @abstractmethod
    def get_subject(self, fedid: str) -> Optional[Subject]:
        """Look up a subject by federal id."""

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[Session]:
        """Look up a session by id."""

    @abstractmethod
    def get_proposal(self, number: int) -> Optional[Proposal]:
        """Look up a proposal by number."""


class InMemoryDirectory(DirectoryIndex):
    """An immutable snapshot of the directory held in memory."""

    def __init__(self,
                 subjects: Iterable[Subject] = (),
                 sessions: Iterable[Session] = (),
                 proposals: Iterable[Proposal] = ()):
        self._subjects: Mapping[str, Subject] = MappingProxyType({s.fedid: s for s in subjects})
        self._sessions: Mapping[str, Session] = MappingProxyType({s.session_id: s for s in sessions})
        self._proposals: Mapping[int, Proposal] = MappingProxyType({p.number: p for p in proposals})

    def get_subject(self, fedid: str) -> Optional[Subject]:
        return self._subjects.get(fedid)

    def get_session(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(str(session_id))

    def get_proposal(self, number: int) -> Optional[Proposal]:
        return self._proposals.get(number)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "InMemoryDirectory":
        """Build a snapshot from the ingestion document.

        Expected shape::

            {
                "subjects": {"alice": {"proposals": [123], "sessions": ["s1"], "permissions": []}},
                "sessions": {"s1": {"proposal_number": 123, "visit_number": 1, "beamline": "i03"}},
                "proposals": {"123": {"sessions": {"1": "s1"}}}
            }

        Raises ValueError if a record is missing a field or has the wrong type.
        """
        if not isinstance(document, Mapping):
            raise ValueError("Directory document must be an object")

        try:
            subjects = [
                Subject(
                    fedid=str(fedid),
                    proposals=frozenset(int(p) for p in record.get("proposals", [])),
                    sessions=frozenset(str(s) for s in record.get("sessions", [])),
                    permissions=frozenset(str(p) for p in record.get("permissions", [])),
                )
                for fedid, record in document.get("subjects", {}).items()
            ]
            sessions = [
                Session(
                    session_id=str(session_id),
                    proposal_number=int(record["proposal_number"]),
                    visit_number=int(record["visit_number"]),
                    beamline=str(record.get("beamline", record.get("beamline_code", ""))),
                )
                for session_id, record in document.get("sessions", {}).items()
            ]
            proposals = [
                Proposal(
                    number=int(number),
                    sessions={str(visit): str(sid) for visit, sid in record.get("sessions", {}).items()},
                )
                for number, record in document.get("proposals", {}).items()
            ]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed directory record: {e}") from e

        directory = cls(subjects, sessions, proposals)
        for problem in directory.validate():
            logger.warning("Directory inconsistency", problem=problem)
        return directory

    @classmethod
    def load_json(cls, path: str) -> "InMemoryDirectory":
        """Load a snapshot from a JSON file, failing as a configuration error."""
        try:
            with open(path, encoding="utf-8") as handle:
                document = json.load(handle)
            directory = cls.from_document(document)
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                "Unable to load directory snapshot",
                details={"path": path, "error": str(e)}
            ) from e

        logger.info("Directory snapshot loaded", path=path, **directory.stats())
        return directory

    def validate(self) -> List[str]:
        """Report records that break the proposal/session invariants."""
        problems = []
        for proposal in self._proposals.values():
            for visit, session_id in proposal.sessions.items():
                session = self._sessions.get(session_id)
                if session is None:
                    problems.append(f"proposal {proposal.number} visit {visit} -> unknown session {session_id}")
                elif session.proposal_number != proposal.number:
                    problems.append(
                        f"proposal {proposal.number} visit {visit} -> session {session_id} "
                        f"belongs to proposal {session.proposal_number}"
                    )
                elif str(session.visit_number) != visit:
                    problems.append(
                        f"proposal {proposal.number} visit {visit} -> session {session_id} "
                        f"has visit {session.visit_number}"
                    )
        return problems

    def stats(self) -> Dict[str, int]:
        return {
            "subjects": len(self._subjects),
            "sessions": len(self._sessions),
            "proposals": len(self._proposals),
        }
