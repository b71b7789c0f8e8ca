from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .services.errors import ErrorKind, OperationResult
from .services.file_ops import DirectoryListing, FileKind


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DirEntryOut(_CamelModel):
    file_name: str
    file_type: FileKind
    file_size: int = Field(ge=0)
    last_accessed: str


class DirDescOut(_CamelModel):
    dir_name: str
    descendants: list[DirEntryOut] = Field(default_factory=list)

    @classmethod
    def from_listing(cls, listing: DirectoryListing) -> DirDescOut:
        return cls(
            dir_name=listing.display_name,
            descendants=[
                DirEntryOut(
                    file_name=e.name,
                    file_type=e.kind,
                    file_size=e.size,
                    last_accessed=e.last_accessed,
                )
                for e in listing.entries
            ],
        )


class CreateDirectoryRequest(BaseModel):
    dir_name: str = Field(min_length=1, max_length=255)


class OperationResponse(BaseModel):
    succeeded: bool
    message: Optional[str] = None
    error: Optional[ErrorKind] = None
    data: Optional[Any] = None

    @classmethod
    def from_result(cls, result: OperationResult) -> OperationResponse:
        return cls(succeeded=result.succeeded, message=result.message, error=result.error, data=result.data)
