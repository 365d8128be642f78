from __future__ import annotations

from pydantic import BaseModel


class PresenceUser(BaseModel):
    display_name: str
    is_admin: bool

    model_config = {"from_attributes": True}


class PresenceResponse(BaseModel):
    online: int
    users: list[PresenceUser]
