from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class InteractionStateModel(BaseModel):
    selected_regions: List[str] = Field(default_factory=list)
    active_country: Optional[str] = None
    enabled_layers: Optional[List[str]] = None
    active_station: Optional[str] = None
    active_attribute: Optional[str] = None


class RangeQueryModel(BaseModel):
    state: InteractionStateModel = Field(default_factory=InteractionStateModel)
    buckets: List[str] = Field(default_factory=list)
    start: Optional[str] = None
    end: Optional[str] = None
