"""Grid models: the sampling grid shape and the generated sample points."""

from pydantic import BaseModel, ConfigDict, Field

from Grid_Rank.models.business import Coordinate


class GridSpec(BaseModel):
    """Columns, rows, and physical span (km) of a sampling grid."""

    model_config = ConfigDict(frozen=True)

    columns: int = Field(ge=1)
    rows: int = Field(ge=1)
    span_km: float = Field(ge=0.0)

    @property
    def total_points(self) -> int:
        """Number of sample points the grid produces."""
        return self.columns * self.rows


class GridPoint(BaseModel):
    """One sample point. Indices are 0-based and row-major."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    row: int = Field(ge=0)
    column: int = Field(ge=0)
    coordinate: Coordinate
