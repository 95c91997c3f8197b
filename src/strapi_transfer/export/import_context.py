"""Batch-scoped bookkeeping of one import run."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from ..models.import_options import ImportFailure, ImportOptions
from ..models.portable import PortableEntry
from ..models.schema import RelationAttribute
from ..protocols import DocumentStatus

logger = logging.getLogger(__name__)

SINGLE_TYPE_KEY = "SINGLE_TYPE"

RecordKey = tuple[str, str]


def record_key(uid: str, id_value: Any) -> RecordKey:
    """Key of a logical entity: content type plus identifier value."""
    return uid, SINGLE_TYPE_KEY if id_value is None else str(id_value)


@dataclass
class PendingRelation:
    """A relation field written without the targets whose import was in progress.

    ``data`` is the locale object as it was written, ``resolved`` the
    documentIds the field was written with and ``values`` the identifier
    values still to be added once their entries exist.
    """

    uid: str
    document_id: str
    status: DocumentStatus
    locale: str | None
    field: str
    attribute: RelationAttribute
    data: dict[str, Any]
    resolved: list[str]
    values: list[Any]


@dataclass
class ImportContext:
    """State shared by every entry of an import batch.

    Tracks which ``(content type, identifier value)`` pairs were written in
    this batch and under which documentId, which are currently being
    imported (relation dependencies are imported recursively), the relation
    fields waiting for such in-progress entries, and the ordered list of
    failures.
    """

    options: ImportOptions
    import_data: dict[str, list[PortableEntry]]
    failures: list[ImportFailure] = field(default_factory=list)
    created_document_ids: set[str] = field(default_factory=set)
    updated_document_ids: set[str] = field(default_factory=set)
    processed_records: dict[RecordKey, str] = field(default_factory=dict)
    in_progress: set[RecordKey] = field(default_factory=set)
    pending_relations: list[PendingRelation] = field(default_factory=list)
    skipped: int = 0

    def record_created(self, uid: str, id_value: Any, document_id: str) -> None:
        self.created_document_ids.add(document_id)
        self.processed_records[record_key(uid, id_value)] = document_id

    def record_updated(self, uid: str, id_value: Any, document_id: str) -> None:
        self.updated_document_ids.add(document_id)
        self.processed_records[record_key(uid, id_value)] = document_id

    def record_skipped(self, uid: str, id_value: Any, document_id: str) -> None:
        """Remember a pre-existing document so later references reuse it."""
        self.skipped += 1
        self.processed_records[record_key(uid, id_value)] = document_id

    def record_aliases(self, uid: str, id_values: list[Any], document_id: str) -> None:
        """Map every identifier value an entry carries to its documentId."""
        for id_value in id_values:
            self.processed_records.setdefault(record_key(uid, id_value), document_id)

    def was_created_in_this_import(self, document_id: str) -> bool:
        return document_id in self.created_document_ids

    def find_processed_record(self, uid: str, id_value: Any) -> str | None:
        return self.processed_records.get(record_key(uid, id_value))

    def is_importing(self, uid: str, id_value: Any) -> bool:
        return record_key(uid, id_value) in self.in_progress

    @contextmanager
    def importing(self, uid: str, *id_values: Any) -> Iterator[None]:
        """Mark an entity, under each of its identifier values, as being imported."""
        keys = {record_key(uid, id_value) for id_value in id_values} - self.in_progress
        self.in_progress.update(keys)
        try:
            yield
        finally:
            self.in_progress.difference_update(keys)

    def defer(self, pending: PendingRelation) -> None:
        logger.debug(
            f"Deferring {pending.field} of {pending.uid} {pending.document_id} "
            f"until {pending.values} are imported"
        )
        self.pending_relations.append(pending)

    def take_pending_relations(self) -> list[PendingRelation]:
        pending, self.pending_relations = self.pending_relations, []
        return pending

    def add_failure(self, error: str, data: Any = None, details: Any = None) -> None:
        logger.debug(f"Import failure: {error}")
        self.failures.append(ImportFailure(error=error, data=data, details=details))

    @property
    def created(self) -> int:
        return len(self.created_document_ids)

    @property
    def updated(self) -> int:
        return len(self.updated_document_ids - self.created_document_ids)
