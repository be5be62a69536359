"""
Usage Schemas
=============
Pydantic models for usage queries, their results and the dashboard API.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DONE_STATUS = "DONE"


class QuerySpec(BaseModel):
    """
    Definition of one analytical usage query.
    Serialized as the upstream submission payload.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="usecase", min_length=1, exclude=True)
    fields: tuple[str, ...] = Field(..., min_length=1)
    metrics: tuple[str, ...] = Field(..., min_length=1)
    where: str = ""

    def payload(self) -> dict[str, Any]:
        """Request body for the upstream query endpoint."""
        return self.model_dump(mode="json")


class SubmittedQuery(BaseModel):
    """A QuerySpec paired with the id the upstream assigned to it."""

    model_config = ConfigDict(frozen=True)

    account_id: str
    query_id: str
    spec: QuerySpec


class QueryResult(BaseModel):
    """
    Polled state of a submitted query.

    Unknown upstream fields (offset, limit, totals...) are kept so the
    dashboard receives the payload as the upstream sent it.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    status: str
    result: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str | None:
        return None if v is None else str(v)

    @field_validator("result", mode="before")
    @classmethod
    def default_result(cls, v: Any) -> list[dict[str, Any]]:
        return v or []

    @property
    def is_done(self) -> bool:
        return self.status.upper() == DONE_STATUS


class UsageBatch(BaseModel):
    """Completed query results for one account selection."""

    account_id: str
    results: list[QueryResult] = Field(default_factory=list)
    completed_at: datetime | None = None

    def __len__(self) -> int:
        return len(self.results)


class SubmitSelectionRequest(BaseModel):
    """Body posted by the dashboard when a contract is selected."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    selected_value: str | None = Field(default=None, alias="selectedValue")


class QuerySpecItem(BaseModel):
    """Catalog entry as listed by the API."""

    name: str
    fields: list[str]
    metrics: list[str]
    where: str


class QueryCatalogResponse(BaseModel):
    """Query batch submitted for each account selection."""

    source: str
    queries: list[QuerySpecItem]
