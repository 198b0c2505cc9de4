"""
Data models specific to API interactions (callers, request envelopes).
"""

from pydantic import BaseModel

from .enums import ActorRole


class Actor(BaseModel):
    """The authenticated caller, supplied by the auth layer."""

    id: str
    role: ActorRole = ActorRole.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role is ActorRole.ADMIN


class ImageAppend(BaseModel):
    """Request body for appending images to a product."""

    images: list[str]
