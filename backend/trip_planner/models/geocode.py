"""
Geocoding result model
"""

import math

from pydantic import BaseModel, Field, model_validator


class GeocodeResult(BaseModel):
    """
    Coordinates for a resolved place. Construction fails for non-finite,
    out-of-range or exactly (0, 0) coordinates.
    """

    lng: float = Field(..., ge=-180, le=180)
    lat: float = Field(..., ge=-90, le=90)
    address: str = Field(..., description="Formatted address")
    city: str | None = None
    district: str | None = None
    province: str | None = None

    @model_validator(mode="after")
    def _check_coordinates(self) -> "GeocodeResult":
        if not (math.isfinite(self.lng) and math.isfinite(self.lat)):
            raise ValueError("coordinates must be finite")
        if self.lng == 0 and self.lat == 0:
            raise ValueError("(0, 0) is not a real location")
        return self


def is_valid_coordinate(lng: float, lat: float) -> bool:
    """Check the numeric range invariant without building a model."""
    if not (math.isfinite(lng) and math.isfinite(lat)):
        return False
    if lng < -180 or lng > 180 or lat < -90 or lat > 90:
        return False
    return not (lng == 0 and lat == 0)
