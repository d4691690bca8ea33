"""
Blob staging for multipart shapefile uploads.

Writes each uploaded part to a fresh scratch directory under a random local
name and hands back StagedFile records (original name + extension + local
path). The directory has no persistence guarantee beyond the request and is
removed when the StagingArea context exits.
"""

import logging
import shutil
import uuid
from pathlib import Path
from typing import Any, List, Union

from exception_areas.models.data_models import StagedFile

logger = logging.getLogger(__name__)


class StagingArea:
    """
    Scratch directory holding one request's uploaded files.

    Usage (as context manager):
        with StagingArea(root) as staging:
            for upload in request.files.getlist("file"):
                staging.add(upload.filename, upload)
            batch = importer.import_batch(staging.files)
    """

    def __init__(self, root: Union[str, Path], cleanup: bool = True) -> None:
        self.root = Path(root)
        self.cleanup = cleanup
        self.directory: Path = self.root / uuid.uuid4().hex
        self.files: List[StagedFile] = []

    def __enter__(self) -> "StagingArea":
        self.directory.mkdir(parents=True, exist_ok=False)
        logger.debug(f"Staging directory created: {self.directory}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self.cleanup:
            shutil.rmtree(self.directory, ignore_errors=True)
        return False  # never suppress exceptions

    def add(self, filename: str, data: Any) -> StagedFile:
        """
        Write one uploaded part to the staging directory.

        Args:
            filename: Original client-side file name (e.g. "parks.shp")
            data: bytes, or a binary file-like object (werkzeug FileStorage)

        Returns:
            StagedFile pointing at the written bytes
        """
        local_path = self.directory / f"BodyPart_{uuid.uuid4().hex}"
        if isinstance(data, (bytes, bytearray)):
            local_path.write_bytes(bytes(data))
        else:
            with open(local_path, "wb") as f:
                shutil.copyfileobj(data, f)

        staged = StagedFile.from_filename(filename, local_path)
        self.files.append(staged)
        return staged
