"""Ephemeral content store for remcpy.

Each uploaded object is one file under the store root, named after its
identifier with the ``@`` marker kept (``store/@report``). Nothing else is
persisted: no sizes, no upload times, no pending deletions.
"""
from .errors import (
    CreateFailed,
    DeleteFailed,
    InvalidIdentifier,
    MissingFilePart,
    NotFound,
    ReadFailed,
    RelayError,
    StreamError,
    WriteFailed,
)
from .service import ContentStore

__all__ = [
    "ContentStore",
    "CreateFailed",
    "DeleteFailed",
    "InvalidIdentifier",
    "MissingFilePart",
    "NotFound",
    "ReadFailed",
    "RelayError",
    "StreamError",
    "WriteFailed",
]
