"""Pydantic models for the YAML map configuration."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    width: float | None = Field(None, gt=0, description="Canvas width")
    height: float | None = Field(None, gt=0, description="Canvas height")
    center: list[float] | None = Field(
        None, min_length=2, max_length=2, description="Focal center as canvas fractions [x, y]"
    )
    fill: float | None = Field(None, gt=0, le=1, description="Fraction of the canvas covered by the geometry")
    key_field: str | None = Field(None, description="Default feature key property")
    identify: str | list[str] | None = Field(None, description="Properties used for name lookups")


class GeometrySource(BaseModel):
    model_config = ConfigDict(extra="forbid")

    source: str = Field(..., description="URL or file path of a GeoJSON or TopoJSON document")
    layers: str | list[str] | None = Field(None, description="Topology objects to load, or the target layer name")
    key_field: str | None = None
    index: int | None = None
    format: Literal["json"] | None = None


class DataSource(BaseModel):
    model_config = ConfigDict(extra="forbid")

    source: str = Field(..., description="URL or file path of a JSON, CSV or TSV table")
    key: str = Field("id", description="Record field holding the join key")
    format: Literal["json", "csv", "tsv"] | None = None


class Output(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = Field("geojson", description="Output type")
    path: str


class MapConfiguration(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    description: str | None = None
    settings: Settings = Field(default_factory=Settings)
    geometry: list[GeometrySource] = Field(..., min_length=1)
    data: list[DataSource] = Field(default_factory=list)
    identify: str | list[str] | None = None
    select: str | None = None
    extent: str | None = Field(None, description="Selection the projection is fitted to")
    center: list[float] | None = Field(None, min_length=2, max_length=2)
    metadata: dict[str, dict[str, Any]] = Field(default_factory=dict)
    outputs: list[Output] = Field(default_factory=list)

    @field_validator("geometry", "data", mode="before")
    @classmethod
    def _wrap_plain_sources(cls, value):
        """Accept a bare source string in place of a source mapping."""
        if isinstance(value, list):
            return [{"source": item} if isinstance(item, str) else item for item in value]
        return value
