"""
Architecture decision records.

An ADR belongs to a track. superseded_by may only be set on a superseded ADR
and must name a different, existing ADR.
"""

import logging

from taskmgr.domain.models import ADR, ADRStatus, utc_now
from taskmgr.lib.errors import InvalidArgumentError

from .base import Repository

logger = logging.getLogger(__name__)


class ADRRepository(Repository):
    table = "adrs"
    schema = "adr"
    label = "ADR"

    def save(self, adr: ADR) -> ADR:
        with self.db.transaction():
            self.integrity.require_track(adr.track_id, f"ADR {adr.id}")
            self.integrity.check_adr_supersession(adr.status, adr.superseded_by, adr.id)
            self._insert(adr.to_record())
        logger.info(f"[DB] created ADR {adr.id} on {adr.track_id}")
        return adr

    def get(self, adr_id: str) -> ADR:
        return ADR.from_row(self._row(adr_id))

    def update(self, adr: ADR) -> ADR:
        with self.db.transaction():
            stored = self.get(adr.id)
            if adr.track_id != stored.track_id:
                self.integrity.require_track(adr.track_id, f"ADR {adr.id}")
            self.integrity.check_adr_supersession(adr.status, adr.superseded_by, adr.id)
            adr.updated_at = utc_now()
            self._update(adr.to_record())
        logger.info(f"[DB] updated ADR {adr.id} ({adr.status})")
        return adr

    def supersede(self, adr_id: str, by_id: str) -> ADR:
        """Mark adr_id as superseded by by_id. Both must exist, checked separately."""
        with self.db.transaction():
            self.integrity.require_adr(adr_id)
            self.integrity.require_adr(by_id, f"supersession of ADR {adr_id}")
            if adr_id == by_id:
                raise InvalidArgumentError(f"ADR {adr_id} cannot supersede itself")
            adr = self.get(adr_id)
            adr.status = ADRStatus.SUPERSEDED.value
            adr.superseded_by = by_id
            adr.updated_at = utc_now()
            self._update(adr.to_record())
        logger.info(f"[DB] ADR {adr_id} superseded by {by_id}")
        return adr

    def deprecate(self, adr_id: str) -> ADR:
        with self.db.transaction():
            adr = self.get(adr_id)
            adr.status = ADRStatus.DEPRECATED.value
            adr.superseded_by = None
            adr.updated_at = utc_now()
            self._update(adr.to_record())
        logger.info(f"[DB] ADR {adr_id} deprecated")
        return adr

    def list(self, track_id: str | None = None, status: str | None = None) -> list[ADR]:
        """Newest first."""
        clauses, params = [], []
        if track_id:
            clauses.append("track_id = ?")
            params.append(track_id)
        if status:
            clauses.append("status = ?")
            params.append(status)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.db.query(f"SELECT * FROM adrs{where} ORDER BY created_at DESC, id DESC", params)
        return [ADR.from_row(r) for r in rows]
