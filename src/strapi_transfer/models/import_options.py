"""Import options and result models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..protocols import ProgressCallback


class ExistingAction(str, Enum):
    """What to do when an imported entry already exists in the store."""

    SKIP = "skip"  # Leave pre-existing documents untouched
    UPDATE = "update"  # Overwrite them
    WARN = "warn"  # Record a failure and move on


class ImportOptions(BaseModel):
    """Policy for an import run.

    Keys can be given in snake_case or in the camelCase used by the admin UI
    payloads (``existingAction``, ``ignoreMissingRelations``, ...).

    Example:
        >>> options = ImportOptions(
        ...     existing_action=ExistingAction.UPDATE,
        ...     ignore_missing_relations=True,
        ...     progress_callback=lambda fraction, message: print(f"{fraction:.0%} {message}"),
        ... )
    """

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    existing_action: ExistingAction = Field(default=ExistingAction.WARN, alias="existingAction")
    ignore_missing_relations: bool = Field(default=False, alias="ignoreMissingRelations")
    allow_draft_on_published: bool = Field(default=True, alias="allowDraftOnPublished")
    allow_locale_updates: bool = Field(default=False, alias="allowLocaleUpdates")
    disallow_new_relations: bool = Field(default=False, alias="disallowNewRelations")
    create_missing_entities: bool = Field(default=False, alias="createMissingEntities")
    fuzzy_relations: bool = Field(default=False, alias="fuzzyRelations")
    validate_before_import: bool = Field(default=True, alias="validateBeforeImport")
    allowed_file_types: list[str] | None = Field(default=None, alias="allowedFileTypes")
    progress_callback: ProgressCallback | None = Field(default=None, exclude=True)


class ImportFailure(BaseModel):
    """A recoverable problem met while importing; the run carried on."""

    error: str
    data: Any = None
    details: Any = None


class ImportErrorLocation(BaseModel):
    entry: Any = None
    path: str = ""


class ImportErrorRecord(BaseModel):
    """A pre-flight validation error; any of these blocks the whole run."""

    error: str
    data: ImportErrorLocation = Field(default_factory=ImportErrorLocation)


class ImportResult(BaseModel):
    """Outcome of an import run."""

    failures: list[ImportFailure] = Field(default_factory=list)
    errors: list[ImportErrorRecord] = Field(default_factory=list)
    created: int = 0
    updated: int = 0
    skipped: int = 0

    @property
    def success(self) -> bool:
        return not self.failures and not self.errors

    @property
    def blocked(self) -> bool:
        """True when validation stopped the run before any write."""
        return bool(self.errors)

    def to_dict(self) -> dict[str, Any]:
        """Return the ``{failures, errors?}`` response shape."""
        payload: dict[str, Any] = {
            "failures": [failure.model_dump(exclude_none=True) for failure in self.failures]
        }
        if self.errors:
            payload["errors"] = [error.model_dump() for error in self.errors]
        return payload
