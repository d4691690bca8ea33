"""
Error taxonomy for the exception area pipeline.

Every expected error raised by the pipeline derives from
ExceptionAreaError and carries the HTTP status category the server maps it
to. Anything else that escapes an operation is an unexpected fault and is
surfaced as a generic server error.

Status categories:
- 400 bad input: InvalidGeometry, InvalidBoundingBox, InvalidZoomLevel,
  ShapefileImportError
- 403 forbidden: Forbidden
- 404 not found: NotFound
- 409 conflict: Conflict
- 415 unsupported media: UnsupportedMedia
"""


class ExceptionAreaError(Exception):
    """Base class for expected, client-facing failures."""

    status_code = 500
    kind = "error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__)
        self.message = message or (self.__class__.__doc__ or "").strip()

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class InvalidGeometry(ExceptionAreaError):
    """Geometry is missing, not polygonal or not topologically valid."""

    status_code = 400
    kind = "invalid_geometry"


class InvalidBoundingBox(ExceptionAreaError):
    """Bounding box is invalid."""

    status_code = 400
    kind = "invalid_bounding_box"


class InvalidZoomLevel(ExceptionAreaError):
    """Zoom level is outside the resolution table."""

    status_code = 400
    kind = "invalid_zoom_level"


class ShapefileImportError(ExceptionAreaError):
    """No valid geometries have been found."""

    status_code = 400
    kind = "import_error"


class Forbidden(ExceptionAreaError):
    """Acting principal does not own the project."""

    status_code = 403
    kind = "forbidden"


class NotFound(ExceptionAreaError):
    """No matching row."""

    status_code = 404
    kind = "not_found"


class Conflict(ExceptionAreaError):
    """Identity fields of an exception area cannot be changed."""

    status_code = 409
    kind = "conflict"


class UnsupportedMedia(ExceptionAreaError):
    """Request content is not multipart/form-data."""

    status_code = 415
    kind = "unsupported_media"
