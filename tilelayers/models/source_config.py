"""Validation models for YAML layer source configuration files."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tilelayers.core.config import SOURCE_GEOPACKAGE, SOURCE_WMS, SOURCE_WMS_LAYER_CAPABILITIES

VALID_SOURCES = (SOURCE_GEOPACKAGE, SOURCE_WMS, SOURCE_WMS_LAYER_CAPABILITIES)


class LayerSourceModel(BaseModel):
    """One layer to build.

    Either ``preset`` names an entry of the built-in source registry, or
    ``source`` and ``location`` describe the source directly. For the
    WmsLayerCapabilities source, ``location`` is a saved capabilities document.
    """

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    preset: Optional[str] = None
    source: Optional[str] = None
    location: Optional[str] = None
    layers: list[str] = Field(default_factory=list)

    @field_validator("layers", mode="before")
    @classmethod
    def _single_layer_name(cls, value):
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("source")
    @classmethod
    def _known_source(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        normalized = value.strip().upper()
        if normalized not in VALID_SOURCES:
            raise ValueError(f"source must be one of {', '.join(VALID_SOURCES)}, got {value!r}")
        return normalized

    @model_validator(mode="after")
    def _preset_or_source(self) -> "LayerSourceModel":
        if self.preset is not None:
            if self.source is not None or self.location is not None:
                raise ValueError("preset cannot be combined with source or location")
            return self

        if self.source is None or self.location is None:
            raise ValueError("either preset or both source and location are required")

        if self.source != SOURCE_GEOPACKAGE and not self.layers:
            raise ValueError(f"layers are required for source {self.source}")

        return self


class LayerSourcesConfiguration(BaseModel):
    """Top level of a layer sources YAML file."""

    model_config = ConfigDict(extra="forbid")

    sources: list[LayerSourceModel] = Field(min_length=1)
    timeout: float = Field(default=60.0, gt=0)  # seconds to wait for all layers
