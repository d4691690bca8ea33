"""
Typed data models for exception areas.

Architectural Overview:
=======================
Immutable dataclasses handed out by the store and query layers. The ORM rows
in models/orm.py never leave a session; callers always receive one of these.

Key Interactions:
-----------------
- ExceptionArea: read model with derived metrics (area, bounding box)
- OwnershipRecord: flat area -> case -> project -> owner tuple used for
  authorization checks
- StagedFile: one uploaded file written to the scratch staging directory

Navigation: Use VS Code outline (Ctrl+Shift+O) for quick navigation
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry


# ═══════════════════════════════════════════════════════════════════════════
# 🗺️ EXCEPTION AREA
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ExceptionArea:
    """Exception area with derived metrics.

    area and bounding_box are always computed from the stored, unsimplified
    geometry. geometry itself may be a simplified or envelope stand-in when
    the area was produced for a viewport listing.

    Attributes:
        id: Database identifier (None before insert)
        case_id: Owning case
        geometry: Shapely polygonal geometry (possibly display-simplified)
        area: Non-negative area of the stored geometry, 0.0 when undefined
        bounding_box: Envelope of the stored geometry
    """

    id: Optional[int]
    case_id: int
    geometry: BaseGeometry
    area: float
    bounding_box: Optional[BaseGeometry]

    @classmethod
    def from_geometry(
        cls, id: Optional[int], case_id: int, geometry: BaseGeometry
    ) -> "ExceptionArea":
        """Build a read model, measuring area and envelope on the geometry."""
        from exception_areas.geometry.geometry_utils import (
            compute_area,
            compute_envelope,
        )

        return cls(
            id=id,
            case_id=case_id,
            geometry=geometry,
            area=compute_area(geometry),
            bounding_box=compute_envelope(geometry),
        )

    def as_dict(self) -> Dict[str, Any]:
        """GeoJSON-friendly representation for the HTTP layer."""
        return {
            "id": self.id,
            "caseId": self.case_id,
            "geometry": mapping(self.geometry),
            "area": self.area,
            "boundingBox": (
                mapping(self.bounding_box) if self.bounding_box is not None else None
            ),
        }


# ═══════════════════════════════════════════════════════════════════════════
# 🔐 OWNERSHIP
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class OwnershipRecord:
    """Flat ownership chain for a case or an exception area.

    area_id is None when the record was resolved for a case only.
    """

    case_id: int
    project_id: int
    owner_id: str
    area_id: Optional[int] = None

    def is_owned_by(self, principal: Optional[str]) -> bool:
        return principal is not None and self.owner_id == principal


# ═══════════════════════════════════════════════════════════════════════════
# 📎 STAGED UPLOAD
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class StagedFile:
    """An uploaded file written to local scratch storage.

    Attributes:
        name: Original file name without extension ("roads" for "roads.shp")
        extension: Lower-cased extension including the dot (".shp")
        local_path: Where the bytes live now
    """

    name: str
    extension: str
    local_path: Path

    @classmethod
    def from_filename(cls, filename: str, local_path: Path) -> "StagedFile":
        """Split an uploaded file name into base name and extension."""
        original = Path(filename.strip().strip('"'))
        return cls(
            name=original.stem,
            extension=original.suffix.lower(),
            local_path=Path(local_path),
        )

    @property
    def is_shp(self) -> bool:
        return self.extension == ".shp"

    @property
    def is_dbf(self) -> bool:
        return self.extension == ".dbf"
