"""
File Schemas

Pydantic models for the per-user file endpoints.

@.architecture
Incoming: api/v1/endpoints/files.py --- {FileDescriptor from data/storage/user_files.py}
Processing: Pydantic validation and serialization --- {2 jobs: data_validation, serialization}
Outgoing: api/v1/endpoints/files.py --- {StoredFileResponse validated model}
"""

from pydantic import BaseModel, ConfigDict


class StoredFileResponse(BaseModel):
    """Response after a file is created or overwritten."""
    name: str
    id: str
    content_type: str
    content_length: int

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "notes.txt",
                "id": "0b8f4a52-2f8c-4b0e-9d55-6f3c1a2e7d10",
                "content_type": "text/plain",
                "content_length": 42
            }
        }
    )
