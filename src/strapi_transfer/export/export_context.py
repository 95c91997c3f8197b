"""Mutable state of one export run."""

from dataclasses import dataclass, field

from ..models.export_options import ExportOptions
from ..models.portable import PortableEntry
from ..utils.uid import is_admin_user


@dataclass
class ExportContext:
    """Output and relation bookkeeping shared by the passes of an export.

    ``processed`` holds the documentIds already written per content type;
    ``pending`` the documentIds discovered through relations that the next
    expansion pass should export.
    """

    options: ExportOptions
    exported: dict[str, list[PortableEntry]] = field(default_factory=dict)
    processed: dict[str, set[str]] = field(default_factory=dict)
    pending: dict[str, list[str]] = field(default_factory=dict)
    skip_relations: bool = False
    skip_component_relations: bool = False
    document_ids: list[str] | None = None

    def record_processed(self, uid: str, document_id: str) -> None:
        self.processed.setdefault(uid, set()).add(document_id)

    def was_processed(self, uid: str, document_id: str) -> bool:
        return document_id in self.processed.get(uid, ())

    def add_relation(self, uid: str, document_id: str | None) -> None:
        """Queue a related document for the next expansion pass."""
        if not document_id or is_admin_user(uid) or self.was_processed(uid, document_id):
            return
        queued = self.pending.setdefault(uid, [])
        if document_id not in queued:
            queued.append(document_id)

    def take_pending(self) -> dict[str, list[str]]:
        """Return the queued relations not yet exported and reset the queue."""
        pending = {
            uid: [doc for doc in document_ids if not self.was_processed(uid, doc)]
            for uid, document_ids in self.pending.items()
        }
        self.pending = {}
        return {uid: document_ids for uid, document_ids in pending.items() if document_ids}

    def entries_for(self, uid: str) -> list[PortableEntry]:
        return self.exported.setdefault(uid, [])
