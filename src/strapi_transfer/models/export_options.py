"""Export options."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ExportOptions(BaseModel):
    """Options for an export run.

    Attributes:
        search: Filter and sort specification (dict, JSON string or query string)
        apply_search: Whether ``search`` is applied at all
        document_ids: Restrict the export to these documents
        export_all_locales: Include every localization of each entry
        export_relations: Follow relations and export their targets too
        deep_populate_relations: Keep following relations of related entries
        deep_populate_component_relations: Same, for relations inside components
        max_depth: Bound on relation expansion passes
        populate_depth: Bound on component nesting for the populate plan
    """

    model_config = ConfigDict(populate_by_name=True)

    search: dict[str, Any] | str | None = None
    apply_search: bool = Field(default=False, alias="applySearch")
    document_ids: list[str] = Field(default_factory=list, alias="documentIds")
    export_all_locales: bool = Field(default=True, alias="exportAllLocales")
    export_relations: bool = Field(default=False, alias="exportRelations")
    deep_populate_relations: bool = Field(default=False, alias="deepPopulateRelations")
    deep_populate_component_relations: bool = Field(
        default=False, alias="deepPopulateComponentRelations"
    )
    max_depth: int = Field(default=20, ge=0, alias="maxDepth")
    populate_depth: int = Field(default=5, ge=0, alias="populateDepth")
