"""Codec configuration using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class KeloJSONSettings(BaseSettings):
    """Codec settings loaded from KELOJSON_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="KELOJSON_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Writer skip policy
    skip_empty_nodes: bool = True
    untagged_closed_is_polygon: bool = False

    # Fractional digits kept for planar coordinates (half-up rounding)
    coordinate_precision: int = 11
    pretty: bool = True

    # Tag keys that turn a closed way into an area
    area_keys: list[str] = [
        "building",
        "landuse",
        "leisure",
        "amenity",
        "natural",
        "place",
        "room",
        "corridor",
        "elevator",
        "stairs",
        "area:highway",
    ]

    # Sentinel tag marking the node whose projected position is the origin
    origin_key: str = "name"
    origin_value: str = "origin"

    # Coordinate-storage keys never emitted as properties
    reserved_keys: list[str] = ["x", "y"]


settings = KeloJSONSettings()
