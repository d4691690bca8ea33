#!/usr/bin/env python3
"""
Exception Areas - Configuration

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Centralized configuration for the exception area pipeline.
Single source of truth for the zoom resolution table, shapefile import
staging, database connection and HTTP server settings.

Configuration Sections:
1. simplification: Zoom -> resolution table and detail threshold
2. import: Scratch staging directory and per-case import lock
3. database: SQLAlchemy connection URL
4. server: Flask host/port and principal header

Navigation Guide:
- Use VS Code outline (Ctrl+Shift+O) to jump between sections
"""

import os
import tempfile
from typing import Dict, Any, TypeVar, Callable, Optional

T = TypeVar("T")


def _env_or_default(
    key: str, default: T, type_fn: Optional[Callable[[str], T]] = None
) -> T:
    """
    Get value from environment variable or use default.

    Args:
        key: Environment variable name (e.g., "EXC_DATABASE_URL")
        default: Default value if env var not set
        type_fn: Optional type conversion function (e.g., float, int)

    Returns:
        Value from environment (converted) or default

    Example:
        >>> _env_or_default("EXC_SERVER_PORT", 5052, int)
        5052  # If env var not set
    """
    val = os.getenv(key)
    if val is not None:
        if type_fn is not None:
            return type_fn(val)
        return val  # type: ignore
    return default


def _env_bool(key: str, default: bool) -> bool:
    """
    Get boolean value from environment variable.

    Treats "true", "1", "yes" as True (case-insensitive).
    Any other value or unset returns default.
    """
    val = os.getenv(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes")


# ═══════════════════════════════════════════════════════════════════════════
# 🔧 ENVIRONMENT VARIABLE OVERRIDES
# ═══════════════════════════════════════════════════════════════════════════
# EXC_DATABASE_URL        - SQLAlchemy URL (default: sqlite:///exception_areas.db)
# EXC_DATABASE_ECHO       - "true" to log SQL statements (default: "false")
# EXC_STAGING_ROOT        - scratch directory for uploaded shapefiles
# EXC_IMPORT_LOCK_DIR     - directory holding the per-case import lock files
# EXC_IMPORT_LOCK_TIMEOUT - seconds to wait for the per-case import lock (default: 600)
# EXC_CLEANUP_STAGING     - "false" keeps staged uploads for debugging (default: "true")
# EXC_SERVER_HOST         - bind address (default: 127.0.0.1)
# EXC_SERVER_PORT         - port (default: 5052)
# EXC_PRINCIPAL_HEADER    - request header carrying the user id (default: X-User-Id)
# EXC_MAX_UPLOAD_MB       - maximum request size for uploads (default: 64)
#
# Example usage:
#   export EXC_DATABASE_URL="postgresql+psycopg://user@localhost/populator"
#   exception-areas-server
# ═══════════════════════════════════════════════════════════════════════════

# ═══════════════════════════════════════════════════════════════════════════
# ⚙️ MASTER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════

CONFIG: Dict[str, Any] = {
    # ═══════════════════════════════════════════════════════════════════════
    # 🗺️ SIMPLIFICATION (zoom-adaptive display geometry)
    # ═══════════════════════════════════════════════════════════════════════
    "simplification": {
        # Meters per pixel for zoom levels 0..13 (index = zoom level)
        "resolutions": [
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
        ],
        # Above this zoom level geometries are sent at full fidelity
        "detail_zoom_threshold": 8,
        # Simplification tolerance = resolution * tolerance_factor
        "tolerance_factor": 2.0,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 📥 SHAPEFILE IMPORT
    # ═══════════════════════════════════════════════════════════════════════
    "import": {
        "staging_root": _env_or_default(
            "EXC_STAGING_ROOT",
            os.path.join(tempfile.gettempdir(), "exception_areas_import"),
        ),
        "lock_dir": _env_or_default(
            "EXC_IMPORT_LOCK_DIR",
            os.path.join(tempfile.gettempdir(), "exception_areas_locks"),
        ),
        "lock_timeout_s": _env_or_default("EXC_IMPORT_LOCK_TIMEOUT", 600.0, float),
        # Remove the staging directory after the import finished
        "cleanup_staging": _env_bool("EXC_CLEANUP_STAGING", True),
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🗄️ DATABASE
    # ═══════════════════════════════════════════════════════════════════════
    "database": {
        "url": _env_or_default("EXC_DATABASE_URL", "sqlite:///exception_areas.db"),
        "echo": _env_bool("EXC_DATABASE_ECHO", False),
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🌐 SERVER
    # ═══════════════════════════════════════════════════════════════════════
    "server": {
        "host": _env_or_default("EXC_SERVER_HOST", "127.0.0.1"),
        "port": _env_or_default("EXC_SERVER_PORT", 5052, int),
        "principal_header": _env_or_default("EXC_PRINCIPAL_HEADER", "X-User-Id"),
        "max_upload_mb": _env_or_default("EXC_MAX_UPLOAD_MB", 64, int),
    },
}
