"""Pydantic schemas for the REST and batch endpoints."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


class FilterSchema(BaseModel):
    """One ``<property> <operation> <value>`` predicate."""

    property: str = Field(..., min_length=1)
    operation: str = "equals"
    value: Any = None


class OrderBySchema(BaseModel):
    property: str = Field(..., min_length=1)
    descending: bool = False


class ReadCommandSchema(BaseModel):
    type: Literal["read"] = "read"
    data_source: str = Field(..., description="Namespaced data source, e.g. 'Bookstore.Book'")
    filters: list[FilterSchema] = Field(default_factory=list)
    order_by: list[OrderBySchema] = Field(default_factory=list)
    top: int | None = Field(default=None, ge=0)
    skip: int = Field(default=0, ge=0)
    read_records: bool = True
    read_total_count: bool = False


class SaveCommandSchema(BaseModel):
    type: Literal["save"] = "save"
    data_source: str = Field(..., description="Namespaced data source, e.g. 'Bookstore.Book'")
    to_insert: list[dict[str, Any]] = Field(default_factory=list)
    to_update: list[dict[str, Any]] = Field(default_factory=list)
    to_delete: list[dict[str, Any]] = Field(default_factory=list)


CommandSchema = Annotated[ReadCommandSchema | SaveCommandSchema, Field(discriminator="type")]


class BatchRequest(BaseModel):
    commands: list[CommandSchema] = Field(..., min_length=1)


class ReadResponse(BaseModel):
    records: list[dict[str, Any]]
    total_count: int | None = None


class SaveResponse(BaseModel):
    inserted: int
    updated: int
    deleted: int
    inserted_ids: list[Any]


class InsertResponse(BaseModel):
    id: Any


class CommandErrorSchema(BaseModel):
    kind: str
    message: str
    command_index: int
    details: dict[str, Any] = Field(default_factory=dict)


class CommandResultSchema(BaseModel):
    success: bool
    data: ReadResponse | SaveResponse | None = None
    error: CommandErrorSchema | None = None


class BatchResponse(BaseModel):
    committed: bool
    results: list[CommandResultSchema]


class DashboardResponse(BaseModel):
    project_name: str
    version: str
    environment: str
    rest_base_route: str
    api_group: str
    data_sources: list[str]
    command_types: list[str]
