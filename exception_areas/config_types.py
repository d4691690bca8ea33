"""
═══════════════════════════════════════════════════════════════════════════════
📋 CONFIGURATION TYPES
═══════════════════════════════════════════════════════════════════════════════

ARCHITECTURAL OVERVIEW
----------------------
Responsibility: Typed, immutable configuration objects for the exception area
pipeline. Replaces direct CONFIG dictionary access in the services.

Usage:
    from exception_areas.config import CONFIG
    from exception_areas.config_types import ExceptionAreasConfig

    # Create once at application startup
    app_config = ExceptionAreasConfig.from_dict(CONFIG)

    engine = SimplificationEngine(app_config.resolution_table)

For Navigation: Use VS Code outline (Ctrl+Shift+O)

NAVIGATION GUIDE
----------------
# ═════ 1. RESOLUTION TABLE (SIMPLIFICATION)
# ═════ 2. IMPORT CONFIGURATION
# ═════ 3. DATABASE CONFIGURATION
# ═════ 4. SERVER CONFIGURATION
# ═════ 5. MASTER FACADE

═══════════════════════════════════════════════════════════════════════════════
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Tuple

from exception_areas.errors import InvalidZoomLevel

# Meters per pixel at zoom levels 0..13
DEFAULT_RESOLUTIONS: Tuple[float, ...] = (
    3440.640,
    1720.320,
    860.160,
    430.080,
    215.040,
    107.520,
    53.760,
    26.880,
    13.440,
    6.720,
    3.360,
    1.680,
    0.840,
    0.420,
)


# ═══════════════════════════════════════════════════════════════════════════════
# 🗺️ 1. RESOLUTION TABLE (SIMPLIFICATION)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ResolutionTable:
    """
    Zoom level -> map resolution lookup used to derive simplification tolerance.

    Attributes:
        resolutions: Meters per pixel, indexed by integer zoom level.
        detail_zoom_threshold: Zoom levels strictly above this value are
            served without simplification.
        tolerance_factor: Tolerance = resolution * tolerance_factor.
    """

    resolutions: Tuple[float, ...] = DEFAULT_RESOLUTIONS
    detail_zoom_threshold: int = 8
    tolerance_factor: float = 2.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ResolutionTable":
        """Create ResolutionTable from CONFIG['simplification'] dictionary."""
        return cls(
            resolutions=tuple(float(r) for r in d.get("resolutions", DEFAULT_RESOLUTIONS)),
            detail_zoom_threshold=int(d.get("detail_zoom_threshold", 8)),
            tolerance_factor=float(d.get("tolerance_factor", 2.0)),
        )

    @property
    def max_zoom(self) -> int:
        return len(self.resolutions) - 1

    def resolution(self, zoom: int) -> float:
        """
        Look up the resolution for a zoom level.

        Raises:
            InvalidZoomLevel: zoom is not an index of the table.
        """
        if isinstance(zoom, bool) or not isinstance(zoom, int):
            raise InvalidZoomLevel(f"zoom level must be an integer, got {zoom!r}")
        if zoom < 0 or zoom > self.max_zoom:
            raise InvalidZoomLevel(
                f"zoom level {zoom} outside supported range 0..{self.max_zoom}"
            )
        return self.resolutions[zoom]

    def tolerance(self, zoom: int) -> float:
        """Simplification tolerance for a zoom level."""
        return self.resolution(zoom) * self.tolerance_factor

    def is_detail_zoom(self, zoom: int) -> bool:
        """True when geometries are served at full fidelity."""
        return zoom > self.detail_zoom_threshold


# ═══════════════════════════════════════════════════════════════════════════════
# 📥 2. IMPORT CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ImportConfig:
    """
    Shapefile import settings.

    Attributes:
        staging_root: Scratch directory where uploads are written.
        lock_dir: Directory for per-case import lock files.
        lock_timeout_s: Seconds to wait for another import of the same case.
        cleanup_staging: Remove the staging directory after each import.
    """

    staging_root: str = "exception_areas_import"
    lock_dir: str = "exception_areas_locks"
    lock_timeout_s: float = 600.0
    cleanup_staging: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ImportConfig":
        """Create ImportConfig from CONFIG['import'] dictionary."""
        return cls(
            staging_root=d.get("staging_root", "exception_areas_import"),
            lock_dir=d.get("lock_dir", "exception_areas_locks"),
            lock_timeout_s=float(d.get("lock_timeout_s", 600.0)),
            cleanup_staging=d.get("cleanup_staging", True),
        )

    @property
    def staging_path(self) -> Path:
        return Path(self.staging_root)

    @property
    def lock_path(self) -> Path:
        return Path(self.lock_dir)


# ═══════════════════════════════════════════════════════════════════════════════
# 🗄️ 3. DATABASE CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class DatabaseConfig:
    """SQLAlchemy connection settings."""

    url: str = "sqlite:///exception_areas.db"
    echo: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DatabaseConfig":
        """Create DatabaseConfig from CONFIG['database'] dictionary."""
        return cls(
            url=d.get("url", "sqlite:///exception_areas.db"),
            echo=d.get("echo", False),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# 🌐 4. SERVER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ServerConfig:
    """
    Flask server settings.

    Attributes:
        host: Bind address.
        port: Bind port.
        principal_header: Request header carrying the authenticated user id.
        max_upload_mb: Maximum multipart upload size.
    """

    host: str = "127.0.0.1"
    port: int = 5052
    principal_header: str = "X-User-Id"
    max_upload_mb: int = 64

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ServerConfig":
        """Create ServerConfig from CONFIG['server'] dictionary."""
        return cls(
            host=d.get("host", "127.0.0.1"),
            port=int(d.get("port", 5052)),
            principal_header=d.get("principal_header", "X-User-Id"),
            max_upload_mb=int(d.get("max_upload_mb", 64)),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# 🏛️ 5. MASTER FACADE
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ExceptionAreasConfig:
    """
    Master configuration object.

    Example:
        from exception_areas.config import CONFIG
        from exception_areas.config_types import ExceptionAreasConfig

        app_config = ExceptionAreasConfig.from_dict(CONFIG)
    """

    resolution_table: ResolutionTable = field(default_factory=ResolutionTable)
    importing: ImportConfig = field(default_factory=ImportConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "ExceptionAreasConfig":
        """Create ExceptionAreasConfig from the CONFIG dictionary."""
        return cls(
            resolution_table=ResolutionTable.from_dict(
                config_dict.get("simplification", {})
            ),
            importing=ImportConfig.from_dict(config_dict.get("import", {})),
            database=DatabaseConfig.from_dict(config_dict.get("database", {})),
            server=ServerConfig.from_dict(config_dict.get("server", {})),
        )
