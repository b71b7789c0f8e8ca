from __future__ import annotations

from fastapi import HTTPException, Request, status

from .services.errors import FileServiceError, PathEscapesRoot, ProbeUnavailable
from .services.file_ops import FileOps
from .services.probe import MediaProbe
from .services.uploads import UploadIngester


def get_file_ops(request: Request) -> FileOps:
    return request.app.state.file_ops


def get_ingester(request: Request) -> UploadIngester:
    return request.app.state.ingester


def get_probe(request: Request) -> MediaProbe:
    return request.app.state.probe


def http_error(exc: FileServiceError) -> HTTPException:
    if isinstance(exc, PathEscapesRoot):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, ProbeUnavailable):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
