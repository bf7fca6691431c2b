"""
Authentication Schemas

Pydantic models for registration and login.

@.architecture
Incoming: api/v1/endpoints/auth.py --- {JSON request bodies}
Processing: Pydantic validation and serialization --- {2 jobs: data_validation, serialization}
Outgoing: api/v1/endpoints/auth.py --- {UserCredentials, LoginResponse validated models}
"""

from pydantic import BaseModel, ConfigDict


class UserCredentials(BaseModel):
    """Username/password pair for register and login."""
    username: str
    password: str

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {"username": "alice", "password": "correct horse"}
        }
    )


class LoginResponse(BaseModel):
    """Access token issued on login."""
    token: str
