"""Insight model: narrative text generated from a completed scan."""

import datetime

from pydantic import BaseModel, ConfigDict, Field

from Grid_Rank.models.business import AttributionSource
from Grid_Rank.models.enums import InsightType


class Insight(BaseModel):
    """Narrative analysis of a scan, from the LLM or the data-driven fallback.

    Frozen because an insight is generated once and persisted as-is.
    """

    model_config = ConfigDict(frozen=True)

    insight_type: InsightType
    content: str
    sources: list[AttributionSource] = Field(default_factory=list)
    model_used: str
    is_fallback: bool = False
    created_at: datetime.datetime
