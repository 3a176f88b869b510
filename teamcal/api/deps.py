"""Request dependencies shared by the routers."""

from typing import Optional

from fastapi import Header


def current_user_id(x_user_id: str = Header(..., alias='X-User-Id')) -> str:
    """Acting user, set by the authenticating proxy in front of the API."""
    return x_user_id


def optional_user_id(x_user_id: Optional[str] = Header(None, alias='X-User-Id')) -> Optional[str]:
    return x_user_id
