"""
Authenticated actor model
"""

from pydantic import BaseModel, Field


class UserInfo(BaseModel):
    """
    The user behind a request, decoded from the bearer token.
    Passed explicitly into vote/notes actions; None means not logged in.
    """

    id: str = Field(..., description="User id (token subject)")
    email: str | None = None
    name: str | None = None
    picture: str | None = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "123456789",
                "email": "user@example.com",
                "name": "Jane Doe",
                "picture": "https://example.com/photo.jpg",
            }
        }
