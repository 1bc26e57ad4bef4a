# ============================================================================
# src/allergy_scribe/core/visit_store.py
# ============================================================================
"""
Visit Store

Persistence boundary for visits and their extraction records. Two
implementations share one interface:

- InMemoryVisitRepository: process-local, for tests and single-process demos
- SqliteVisitRepository: raw sqlite3, full visit payload stored as JSON
"""

import copy
import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class VisitStatus(str, Enum):
    DRAFT = "draft"
    COMPLETED = "completed"
    ARCHIVED = "archived"


@dataclass
class StoredVisit:
    """
    One visit. `extraction` is the current validated record; superseded
    records from earlier extractions are kept in `history`.
    """
    visit_id: str
    status: VisitStatus = VisitStatus.DRAFT
    patient_alias: Optional[str] = None
    sources: List[Dict[str, Any]] = field(default_factory=list)
    extraction: Optional[Dict[str, Any]] = None
    analysis: Optional[Dict[str, Any]] = None
    revision: int = 0
    history: List[Dict[str, Any]] = field(default_factory=list)
    generated_note: Optional[str] = None
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    updated_at: str = field(default_factory=lambda: datetime.now().isoformat())
    completed_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "visitId": self.visit_id,
            "status": self.status.value,
            "patientAlias": self.patient_alias,
            "sources": self.sources,
            "extraction": self.extraction,
            "analysisMetadata": self.analysis,
            "revision": self.revision,
            "history": self.history,
            "generatedNote": self.generated_note,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "completedAt": self.completed_at,
        }

    def summary(self) -> Dict[str, Any]:
        """Listing form: no source content, no history."""
        return {
            "visitId": self.visit_id,
            "status": self.status.value,
            "patientAlias": self.patient_alias,
            "revision": self.revision,
            "analysisStatus": (self.analysis or {}).get("status"),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "completedAt": self.completed_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredVisit":
        return cls(
            visit_id=data["visitId"],
            status=VisitStatus(data.get("status", VisitStatus.DRAFT.value)),
            patient_alias=data.get("patientAlias"),
            sources=data.get("sources") or [],
            extraction=data.get("extraction"),
            analysis=data.get("analysisMetadata"),
            revision=data.get("revision", 0),
            history=data.get("history") or [],
            generated_note=data.get("generatedNote"),
            created_at=data.get("createdAt") or datetime.now().isoformat(),
            updated_at=data.get("updatedAt") or datetime.now().isoformat(),
            completed_at=data.get("completedAt"),
        )


class VisitRepository(ABC):
    """Storage interface injected into VisitService."""

    @abstractmethod
    def get(self, visit_id: str) -> Optional[StoredVisit]:
        pass

    @abstractmethod
    def put(self, visit: StoredVisit) -> None:
        pass

    @abstractmethod
    def list(
        self,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> List[StoredVisit]:
        """Visits newest first, optionally filtered by status."""
        pass

    @abstractmethod
    def count(self, status: Optional[str] = None) -> int:
        pass

    @abstractmethod
    def delete(self, visit_id: str) -> bool:
        pass


class InMemoryVisitRepository(VisitRepository):
    """
    Dict-backed repository. Visits are deep-copied on the way in and out
    so callers never share mutable state with the store.
    """

    def __init__(self):
        self._visits: Dict[str, StoredVisit] = {}
        self._lock = threading.Lock()

    def get(self, visit_id: str) -> Optional[StoredVisit]:
        with self._lock:
            visit = self._visits.get(visit_id)
            return copy.deepcopy(visit) if visit else None

    def put(self, visit: StoredVisit) -> None:
        with self._lock:
            self._visits[visit.visit_id] = copy.deepcopy(visit)

    def list(self, status: Optional[str] = None, limit: int = 20, offset: int = 0) -> List[StoredVisit]:
        with self._lock:
            visits = [
                v for v in self._visits.values()
                if status is None or v.status.value == status
            ]
        visits.sort(key=lambda v: v.created_at, reverse=True)
        return [copy.deepcopy(v) for v in visits[offset:offset + limit]]

    def count(self, status: Optional[str] = None) -> int:
        with self._lock:
            return sum(
                1 for v in self._visits.values()
                if status is None or v.status.value == status
            )

    def delete(self, visit_id: str) -> bool:
        with self._lock:
            return self._visits.pop(visit_id, None) is not None


class SqliteVisitRepository(VisitRepository):
    """
    SQLite-backed repository.

    Stores the full visit dict as JSON, with status and timestamps in
    their own columns for filtering and ordering.
    """

    def __init__(self, db_path: Optional[Path] = None):
        if db_path is None:
            from ..config.base_config import base_settings
            db_path = base_settings.VISIT_DB_PATH
        self.db_path = Path(db_path)
        self._init_database()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------
    def _init_database(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        cur = conn.cursor()

        cur.execute("""
            CREATE TABLE IF NOT EXISTS visits (
                visit_id        TEXT PRIMARY KEY,
                status          TEXT NOT NULL DEFAULT 'draft',
                revision        INTEGER NOT NULL DEFAULT 0,
                created_at      TEXT NOT NULL,
                updated_at      TEXT NOT NULL,
                -- Full visit payload as JSON
                visit_data      TEXT NOT NULL
            )
        """)
        cur.execute("""
            CREATE INDEX IF NOT EXISTS idx_visits_status
            ON visits (status)
        """)
        cur.execute("""
            CREATE INDEX IF NOT EXISTS idx_visits_created
            ON visits (created_at DESC)
        """)

        conn.commit()
        conn.close()
        logger.info(f"Visit store initialized: {self.db_path}")

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------
    def put(self, visit: StoredVisit) -> None:
        conn = sqlite3.connect(str(self.db_path))
        cur = conn.cursor()
        cur.execute("""
            INSERT OR REPLACE INTO visits
                (visit_id, status, revision, created_at, updated_at, visit_data)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            visit.visit_id,
            visit.status.value,
            visit.revision,
            visit.created_at,
            visit.updated_at,
            json.dumps(visit.to_dict(), default=str),
        ))
        conn.commit()
        conn.close()
        logger.debug(f"Saved visit {visit.visit_id} (revision {visit.revision})")

    def delete(self, visit_id: str) -> bool:
        conn = sqlite3.connect(str(self.db_path))
        cur = conn.cursor()
        cur.execute("DELETE FROM visits WHERE visit_id = ?", (visit_id,))
        deleted = cur.rowcount > 0
        conn.commit()
        conn.close()
        return deleted

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------
    def get(self, visit_id: str) -> Optional[StoredVisit]:
        conn = sqlite3.connect(str(self.db_path))
        cur = conn.cursor()
        cur.execute("SELECT visit_data FROM visits WHERE visit_id = ?", (visit_id,))
        row = cur.fetchone()
        conn.close()
        if row:
            return StoredVisit.from_dict(json.loads(row[0]))
        return None

    def list(self, status: Optional[str] = None, limit: int = 20, offset: int = 0) -> List[StoredVisit]:
        conn = sqlite3.connect(str(self.db_path))
        cur = conn.cursor()

        query = "SELECT visit_data FROM visits WHERE 1=1"
        params: list = []
        if status:
            query += " AND status = ?"
            params.append(status)
        query += " ORDER BY created_at DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        cur.execute(query, params)
        rows = cur.fetchall()
        conn.close()
        return [StoredVisit.from_dict(json.loads(r[0])) for r in rows]

    def count(self, status: Optional[str] = None) -> int:
        conn = sqlite3.connect(str(self.db_path))
        cur = conn.cursor()
        if status:
            cur.execute("SELECT COUNT(*) FROM visits WHERE status = ?", (status,))
        else:
            cur.execute("SELECT COUNT(*) FROM visits")
        n = cur.fetchone()[0]
        conn.close()
        return n


def create_repository(config: Optional[Dict[str, Any]] = None) -> VisitRepository:
    """Build the repository named by `visit_store` ("memory" | "sqlite")."""
    config = config or {}
    kind = (config.get('visit_store') or 'memory').lower()
    if kind == 'sqlite':
        return SqliteVisitRepository(config.get('visit_db_path'))
    if kind == 'memory':
        return InMemoryVisitRepository()
    raise ValueError(f"Unknown visit store: {kind}. Supported: memory, sqlite")
