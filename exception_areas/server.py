#!/usr/bin/env python3
"""
Exception Areas - Flask Server

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: HTTP endpoints over the query service and the store.
Authentication happens upstream; the authenticated user id arrives in a
request header (ServerConfig.principal_header).

Key Interactions:
- QueryService for reads (verbatim or zoom/viewport simplified)
- ExceptionAreaStore for mutations, one store per request/principal
- StagingArea + ShapefileImporter for multipart shapefile uploads

Navigation Guide:
- ROUTES: /api/<model>/projects/<project>/cases/<case>/exceptions[...]
- ERRORS: ExceptionAreaError -> JSON body with its status code
- STARTUP: create_app() / main()

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
from typing import Any, Dict, Optional, Tuple

from flask import Blueprint, Flask, current_app, jsonify, request, url_for
from flask_cors import CORS
from sqlalchemy.orm import Session, sessionmaker

from exception_areas.config import CONFIG
from exception_areas.config_types import ExceptionAreasConfig
from exception_areas.errors import (
    ExceptionAreaError,
    InvalidGeometry,
    InvalidZoomLevel,
    UnsupportedMedia,
)
from exception_areas.geometry.simplification import SimplificationEngine
from exception_areas.importing.shapefile_importer import ShapefileImporter
from exception_areas.importing.staging import StagingArea
from exception_areas.query.query_service import QueryService
from exception_areas.store.database import create_db_engine, create_session_factory
from exception_areas.store.exception_store import ExceptionAreaStore
from exception_areas.store.invalidation import (
    DatabaseResultsInvalidator,
    ResultsInvalidator,
)

logger = logging.getLogger(__name__)

EXTENSION_KEY = "exception_areas"

BASE_ROUTE = "/api/<model_id>/projects/<int:project_id>/cases/<int:case_id>/exceptions"

api = Blueprint("exception_areas", __name__)


# ═══════════════════════════════════════════════════════════════════════════
# 🔧 REQUEST HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def _services() -> Dict[str, Any]:
    return current_app.extensions[EXTENSION_KEY]


def _principal() -> Optional[str]:
    header = _services()["config"].server.principal_header
    return request.headers.get(header) or None


def _store() -> ExceptionAreaStore:
    services = _services()
    config: ExceptionAreasConfig = services["config"]
    return ExceptionAreaStore(
        services["session_factory"],
        principal=_principal(),
        invalidator=services["invalidator"],
        lock_dir=config.importing.lock_path,
        lock_timeout_s=config.importing.lock_timeout_s,
    )


def _query() -> QueryService:
    return _services()["query"]


def _json_object() -> Dict[str, Any]:
    """Request body as a JSON object; an absent or unparsable body is empty."""
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise InvalidGeometry("request body must be a JSON object")
    return body


# ═══════════════════════════════════════════════════════════════════════════
# 🛣️ API ROUTES
# ═══════════════════════════════════════════════════════════════════════════


@api.route(BASE_ROUTE, methods=["GET"])
def list_exceptions(model_id: str, project_id: int, case_id: int):
    """
    Get the exception areas of a case.

    Query args:
        zoom: int zoom level (optional, together with bbox)
        bbox: "minX,minY,maxX,maxY" viewport (optional, together with zoom)

    Returns:
        JSON list of exception areas; simplified when zoom/bbox are given.
    """
    if "zoom" in request.args or "bbox" in request.args:
        zoom = request.args.get("zoom", type=int)
        if zoom is None:
            raise InvalidZoomLevel("zoom level must be an integer")
        areas = _query().list_for_viewport(case_id, zoom, request.args.get("bbox"))
    else:
        areas = _query().list_all(case_id)
    return jsonify([area.as_dict() for area in areas])


@api.route(BASE_ROUTE + "/<int:area_id>", methods=["GET"])
def get_exception(model_id: str, project_id: int, case_id: int, area_id: int):
    """Get one exception area."""
    return jsonify(_query().get_one(case_id, area_id).as_dict())


@api.route(BASE_ROUTE, methods=["POST"])
def create_exception(model_id: str, project_id: int, case_id: int):
    """
    Create an exception area.

    Request Body:
        {"geometry": GeoJSON geometry}

    Returns:
        201 with the created area and a Location header.
    """
    body = _json_object()
    created = _store().create(case_id, body.get("geometry"), project_id=project_id)

    response = jsonify(created.as_dict())
    response.status_code = 201
    response.headers["Location"] = url_for(
        "exception_areas.get_exception",
        model_id=model_id,
        project_id=project_id,
        case_id=case_id,
        area_id=created.id,
    )
    return response


@api.route(BASE_ROUTE + "/<int:area_id>", methods=["PUT"])
def update_exception(model_id: str, project_id: int, case_id: int, area_id: int):
    """
    Update an exception area. Only the geometry may change.

    Returns:
        204 No Content
    """
    body = _json_object()
    _store().update(area_id, case_id, body, project_id=project_id)
    return "", 204


@api.route(BASE_ROUTE + "/<int:area_id>", methods=["DELETE"])
def delete_exception(model_id: str, project_id: int, case_id: int, area_id: int):
    """Delete an exception area and return it."""
    removed = _store().delete(area_id, case_id, project_id=project_id)
    return jsonify(removed.as_dict())


@api.route(BASE_ROUTE + "/shape", methods=["POST"])
def import_shapefiles(model_id: str, project_id: int, case_id: int):
    """
    Replace all exception areas of a case with the polygons of uploaded
    shapefiles (multipart/form-data, any field names, .shp + sidecars).

    Returns:
        {"imported": int}
    """
    if not request.mimetype.startswith("multipart/"):
        raise UnsupportedMedia()

    services = _services()
    config: ExceptionAreasConfig = services["config"]
    store = _store()
    store.authorize_case(case_id, project_id=project_id)

    with StagingArea(
        config.importing.staging_path, cleanup=config.importing.cleanup_staging
    ) as staging:
        for _, upload in request.files.items(multi=True):
            staging.add(upload.filename or "", upload.stream)
        geometries = services["importer"].import_batch(staging.files)

    inserted = store.replace_all_for_case(case_id, geometries, project_id=project_id)
    return jsonify({"imported": len(inserted)})


# ═══════════════════════════════════════════════════════════════════════════
# ⚠️ ERROR HANDLING
# ═══════════════════════════════════════════════════════════════════════════


@api.app_errorhandler(ExceptionAreaError)
def handle_exception_area_error(error: ExceptionAreaError) -> Tuple[Any, int]:
    if error.status_code >= 500:
        logger.error(f"❌ {error.kind}: {error.message}")
    else:
        logger.info(f"Request rejected ({error.status_code} {error.kind}): {error.message}")
    return jsonify(error.to_dict()), error.status_code


# ═══════════════════════════════════════════════════════════════════════════
# 🚀 SERVER INITIALIZATION
# ═══════════════════════════════════════════════════════════════════════════


def create_app(
    config: Optional[ExceptionAreasConfig] = None,
    session_factory: Optional["sessionmaker[Session]"] = None,
    invalidator: Optional[ResultsInvalidator] = None,
    importer: Optional[ShapefileImporter] = None,
) -> Flask:
    """
    Build the Flask application.

    Args:
        config: Typed configuration (defaults to CONFIG)
        session_factory: SQLAlchemy session factory (defaults to one built
            from config.database, with the schema created)
        invalidator: Downstream results invalidator
        importer: Shapefile importer

    Returns:
        Configured Flask app.
    """
    config = config or ExceptionAreasConfig.from_dict(CONFIG)
    if session_factory is None:
        session_factory = create_session_factory(
            create_db_engine(config.database), create_schema=True
        )

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.server.max_upload_mb * 1024 * 1024
    CORS(app)

    app.extensions[EXTENSION_KEY] = {
        "config": config,
        "session_factory": session_factory,
        "invalidator": invalidator or DatabaseResultsInvalidator(),
        "importer": importer or ShapefileImporter(),
        "query": QueryService(
            session_factory, SimplificationEngine(config.resolution_table)
        ),
    }
    app.register_blueprint(api)
    return app


def main() -> None:
    """Main entry point - configure logging and start the server."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")

    config = ExceptionAreasConfig.from_dict(CONFIG)
    app = create_app(config)

    logger.info(
        f"🌐 Starting server at http://{config.server.host}:{config.server.port}"
    )
    app.run(host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
