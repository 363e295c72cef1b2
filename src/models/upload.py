"""Uploaded document record handed to the analysis collaborator."""

import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from uuid import uuid4


@dataclass
class DocumentUpload:
    """
    One document queued for analysis.

    Attributes:
        document_id: Stable identifier, unique within a batch
        file_name: Display name of the document
        mime_type: MIME type of ``content``
        content: Raw document bytes
    """

    document_id: str
    file_name: str
    mime_type: str
    content: bytes = field(repr=False)

    @classmethod
    def from_path(cls, path: str, document_id: Optional[str] = None) -> "DocumentUpload":
        """Read a document from disk, guessing its MIME type from the extension."""
        file_path = Path(path)
        mime_type, _ = mimetypes.guess_type(file_path.name)
        return cls(
            document_id=document_id or uuid4().hex[:12],
            file_name=file_path.name,
            mime_type=mime_type or "application/octet-stream",
            content=file_path.read_bytes(),
        )
