"""
Pydantic schemas for the /builds endpoints.

These are NOT the scheduler's dataclasses — they define the HTTP contract:
- BuildCreate: what a front-end sends to submit a build (request body)
- AdmissionResponse: what submit() decided (response body)
- ReleaseRequest: how an external executor reports a finished build

Identities arrive as strings over HTTP. Chat ids and web session ids are all
just opaque keys to the queue.
"""

from typing import Optional

from pydantic import BaseModel, Field

from models.enums import JobKind


class BuildCreate(BaseModel):
    """Request body for POST /builds/."""

    identity: str = Field(..., min_length=1, max_length=128, examples=["123456789"])
    display_name: str = Field(default="User", max_length=255, examples=["Alice"])
    kind: JobKind = JobKind.URL  # must be one of: url, zip
    payload: dict = Field(
        default_factory=dict,
        examples=[{"app_name": "My Shop", "url": "https://example.com"}],
    )


class AdmissionResponse(BaseModel):
    """Response body for POST /builds/."""

    accepted: bool
    immediate: bool
    position: int                  # 1-based, 0 when the build started immediately
    estimated_wait_minutes: int
    is_priority: bool
    request_id: Optional[str] = None
    reason: Optional[str] = None

    # Read straight from the AdmissionResult dataclass
    model_config = {"from_attributes": True}


class ReleaseRequest(BaseModel):
    """Request body for POST /builds/{identity}/release."""

    succeeded: bool = True
