"""
Division models.
Divisions are read-only to the core: boundaries and officer rosters are
maintained elsewhere and loaded per request.
"""

from pydantic import BaseModel, Field
from typing import Any, List, Optional


class Officer(BaseModel):
    id: str = "unknown"
    name: str = "Unknown"
    phone: Optional[str] = None
    alternate_phone: Optional[str] = None
    is_active: bool = True


class Division(BaseModel):
    id: str
    name: str
    code: Optional[str] = None
    # Outer ring of [lng, lat] vertices. Stored data may contain strings or
    # junk; the matcher coerces and skips bad vertices.
    boundary: Optional[List[List[Any]]] = None
    officers: List[Officer] = Field(default_factory=list)
    email: Optional[str] = None

    def active_officers(self, limit: Optional[int] = None) -> List[Officer]:
        active = [officer for officer in self.officers if officer.is_active]
        return active[:limit] if limit is not None else active


class DivisionSummary(BaseModel):
    id: str
    name: str
    code: Optional[str] = None
