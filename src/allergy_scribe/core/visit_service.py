# ============================================================================
# src/allergy_scribe/core/visit_service.py
# ============================================================================
"""
Visit Service

Owns the lifecycle of a visit's extraction record:

    create_visit -> create_from_extraction -> apply_edit* -> complete_visit

Edit-then-analyze for one visit runs under that visit's lock, so two
concurrent edits can never interleave and lose an update. Different visits
never contend.

Every extraction and edit is written to the audit log (ids, paths and
revisions only; field values can be clinical content).
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .analyzer import SafetyAnalyzer
from .editor import ReconciliationEditor
from .visit_store import InMemoryVisitRepository, StoredVisit, VisitRepository, VisitStatus
from ..utils.exceptions import EditError, SchemaValidationError, VisitExistsError, VisitNotFoundError
from ..utils.logging import create_audit_logger
from ..validators.schema_validator import SchemaValidator


class VisitLocks:
    """
    Registry of one lock per visit id.

    Locks outlive deleted visits: a waiter on the old lock and the holder of
    a re-created visit with the same id must still exclude each other.
    """

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def for_visit(self, visit_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(visit_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[visit_id] = lock
            return lock

    @contextmanager
    def hold(self, visit_id: str):
        lock = self.for_visit(visit_id)
        with lock:
            yield


class VisitService:
    """
    Visit persistence plus the serialized edit loop.

    Usage:
        service = VisitService(SqliteVisitRepository())
        service.create_visit("v-1")
        service.create_from_extraction("v-1", record)
        visit = service.apply_edit("v-1", "hpi.triggers", ["peanut"])
    """

    def __init__(
        self,
        repository: Optional[VisitRepository] = None,
        editor: Optional[ReconciliationEditor] = None,
        analyzer: Optional[SafetyAnalyzer] = None,
        validator: Optional[SchemaValidator] = None,
        audit_logger: Optional[logging.Logger] = None
    ):
        self.repository = repository or InMemoryVisitRepository()
        self.validator = validator or SchemaValidator()
        self.editor = editor or ReconciliationEditor(validator=self.validator)
        self.analyzer = analyzer or SafetyAnalyzer()
        self.audit = audit_logger or create_audit_logger("visits")
        self.locks = VisitLocks()
        self.logger = logging.getLogger(self.__class__.__name__)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def create_visit(
        self,
        visit_id: Optional[str] = None,
        patient_alias: Optional[str] = None,
        sources: Optional[List[Dict[str, Any]]] = None
    ) -> StoredVisit:
        """
        Register a new draft visit.

        Raises:
            VisitExistsError: the id is taken
        """
        visit_id = visit_id or f"visit-{uuid.uuid4().hex[:12]}"
        with self.locks.hold(visit_id):
            if self.repository.get(visit_id) is not None:
                raise VisitExistsError(visit_id)

            visit = StoredVisit(
                visit_id=visit_id,
                patient_alias=patient_alias,
                sources=list(sources or []),
            )
            self.repository.put(visit)

        self.logger.info(f"Created visit {visit_id}")
        self.audit.info("visit_created", extra={"visit_id": visit_id})
        return visit

    def get_visit(self, visit_id: str) -> StoredVisit:
        visit = self.repository.get(visit_id)
        if visit is None:
            raise VisitNotFoundError(visit_id)
        return visit

    def list_visits(
        self,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[StoredVisit], int]:
        """Newest first. Returns (page, total matching)."""
        if status is not None:
            VisitStatus(status)
        return self.repository.list(status=status, limit=limit, offset=offset), self.repository.count(status)

    def create_from_extraction(
        self,
        visit_id: str,
        record: Dict[str, Any],
        sources: Optional[List[Dict[str, Any]]] = None
    ) -> StoredVisit:
        """
        Store a validated extraction as the visit's current record.

        A previous extraction is superseded, not deleted: it moves to
        `history` with the revision it had reached.

        Raises:
            VisitNotFoundError: unknown visit
            SchemaValidationError: record does not conform to the schema
        """
        result = self.validator.validate(record)
        if not result.is_valid:
            raise SchemaValidationError(result.errors, partial_record=result.record)

        with self.locks.hold(visit_id):
            visit = self.get_visit(visit_id)
            now = datetime.now().isoformat()

            if visit.extraction is not None:
                visit.history.append({
                    "extraction": visit.extraction,
                    "analysisMetadata": visit.analysis,
                    "revision": visit.revision,
                    "supersededAt": now,
                })

            visit.extraction = result.record
            visit.analysis = self.analyzer.analyze(result.record).to_dict()
            visit.revision += 1
            visit.updated_at = now
            if result.record.get("patientAlias"):
                visit.patient_alias = result.record["patientAlias"]
            if sources is not None:
                visit.sources = list(sources)

            self.repository.put(visit)

        self.logger.info(
            f"Stored extraction for visit {visit_id} "
            f"(revision {visit.revision}, superseded {len(visit.history)})"
        )
        self.audit.info(
            "extraction_stored",
            extra={
                "visit_id": visit_id,
                "revision": visit.revision,
                "analysis_status": visit.analysis["status"],
                "red_flag_count": len(visit.analysis["redFlags"]),
            },
        )
        return visit

    def apply_edit(self, visit_id: str, path: str, value: Any) -> StoredVisit:
        """
        Apply one clinician edit and re-run the analyzer, atomically per visit.

        Raises:
            VisitNotFoundError: unknown visit
            EditError: invalid path or value; the stored record is unchanged
        """
        with self.locks.hold(visit_id):
            visit = self.get_visit(visit_id)
            if visit.extraction is None:
                raise EditError(path, "visit has no extraction to edit")

            try:
                updated = self.editor.apply_edit(visit.extraction, path, value)
            except EditError as e:
                self.audit.info(
                    "edit_rejected",
                    extra={"visit_id": visit_id, "path": path, "revision": visit.revision, "reason": e.reason},
                )
                raise

            visit.extraction = updated
            visit.analysis = self.analyzer.analyze(updated).to_dict()
            visit.revision += 1
            visit.updated_at = datetime.now().isoformat()
            if path == "patientAlias":
                visit.patient_alias = updated.get("patientAlias")

            self.repository.put(visit)

        self.logger.debug(f"Edit applied to visit {visit_id} at {path}")
        self.audit.info(
            "edit_applied",
            extra={"visit_id": visit_id, "path": path, "revision": visit.revision},
        )
        return visit

    def complete_visit(self, visit_id: str, generated_note: str) -> StoredVisit:
        """Mark the visit completed and attach the generated note."""
        with self.locks.hold(visit_id):
            visit = self.get_visit(visit_id)
            now = datetime.now().isoformat()
            visit.status = VisitStatus.COMPLETED
            visit.generated_note = generated_note
            visit.completed_at = now
            visit.updated_at = now
            self.repository.put(visit)

        self.audit.info("visit_completed", extra={"visit_id": visit_id, "revision": visit.revision})
        return visit

    def delete_visit(self, visit_id: str) -> bool:
        with self.locks.hold(visit_id):
            deleted = self.repository.delete(visit_id)
        if deleted:
            self.audit.info("visit_deleted", extra={"visit_id": visit_id})
        return deleted

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "totalVisits": self.repository.count(),
            "completedVisits": self.repository.count(VisitStatus.COMPLETED.value),
            "draftVisits": self.repository.count(VisitStatus.DRAFT.value),
            "archivedVisits": self.repository.count(VisitStatus.ARCHIVED.value),
            "recentVisits": [v.summary() for v in self.repository.list(limit=5)],
        }
