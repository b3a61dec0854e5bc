"""
Documents: free-form markdown attached to a track, an iteration, or nothing.

The track/iteration attachment is exclusive. It is checked by the
IntegrityAuthority before every write and enforced again by a CHECK
constraint on the documents table.
"""

import logging

from taskmgr.domain.models import Document, utc_now

from .base import Repository

logger = logging.getLogger(__name__)


class DocumentRepository(Repository):
    table = "documents"
    schema = "document"
    label = "document"

    def save(self, doc: Document) -> Document:
        with self.db.transaction():
            self.integrity.check_document_attachment(doc.track_id, doc.iteration_number, doc.id)
            self._insert(doc.to_record())
        logger.info(f"[DB] created document {doc.id}")
        return doc

    def get(self, doc_id: str) -> Document:
        return Document.from_row(self._row(doc_id))

    def update(self, doc: Document) -> Document:
        with self.db.transaction():
            self.integrity.check_document_attachment(doc.track_id, doc.iteration_number, doc.id)
            doc.updated_at = utc_now()
            self._update(doc.to_record())
        logger.info(f"[DB] updated document {doc.id}")
        return doc

    def attach_to_track(self, doc_id: str, track_id: str) -> Document:
        """Raises InvalidArgumentError while the document is on an iteration."""
        with self.db.transaction():
            doc = self.get(doc_id)
            self.integrity.require_track(track_id, f"document {doc_id}")
            doc.attach_to_track(track_id)
            self._update(doc.to_record())
        logger.info(f"[DB] attached document {doc_id} to track {track_id}")
        return doc

    def attach_to_iteration(self, doc_id: str, iteration_number: int) -> Document:
        """Raises InvalidArgumentError while the document is on a track."""
        with self.db.transaction():
            doc = self.get(doc_id)
            self.integrity.require_iteration(iteration_number, f"document {doc_id}")
            doc.attach_to_iteration(iteration_number)
            self._update(doc.to_record())
        logger.info(f"[DB] attached document {doc_id} to iteration {iteration_number}")
        return doc

    def detach(self, doc_id: str) -> Document:
        with self.db.transaction():
            doc = self.get(doc_id)
            doc.detach()
            self._update(doc.to_record())
        logger.info(f"[DB] detached document {doc_id}")
        return doc

    def list(
        self,
        track_id: str | None = None,
        iteration_number: int | None = None,
        doc_type: str | None = None,
    ) -> list[Document]:
        """Newest first."""
        clauses, params = [], []
        if track_id:
            clauses.append("track_id = ?")
            params.append(track_id)
        if iteration_number is not None:
            clauses.append("iteration_number = ?")
            params.append(iteration_number)
        if doc_type:
            clauses.append("type = ?")
            params.append(doc_type)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.db.query(f"SELECT * FROM documents{where} ORDER BY created_at DESC, id DESC", params)
        return [Document.from_row(r) for r in rows]
