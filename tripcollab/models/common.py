"""
Common API models
"""

from typing import Any

from pydantic import BaseModel, Field


class APIResponse(BaseModel):
    """
    Unified API response envelope shared by all routers
    """

    code: int = Field(default=0, description="0 means success; non-zero means error")
    msg: str = Field(default="ok", description="Human-readable message")
    data: Any | None = Field(default=None, description="Payload data")

    class Config:
        json_schema_extra = {
            "example": {
                "code": 0,
                "msg": "ok",
                "data": {"item_id": "6911a4b00ef8e4358798cb05", "votes": 3, "user_vote": "up"},
            }
        }
