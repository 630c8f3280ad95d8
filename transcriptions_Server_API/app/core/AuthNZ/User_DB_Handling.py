# User_DB_Handling.py
# Description: Authenticates sync callers by API key and exposes their capabilities.
#
# Imports
import secrets
from typing import List, Optional
#
# 3rd-Party Libraries
from fastapi import Header, HTTPException, status
from loguru import logger
from pydantic import BaseModel, Field
#
# Local Imports
from transcriptions_Server_API.app.core.config import EDIT_CAPABILITY, settings
#
#######################################################################################################################

# --- User Model ---
class User(BaseModel):
    id: int
    username: str
    capabilities: List[str] = Field(default_factory=list)
    is_active: bool = True


_sync_editor = User(id=1, username="sync_editor", capabilities=[EDIT_CAPABILITY])
_read_only_user = User(id=2, username="read_only")


def _matches(candidate: str, expected: Optional[str]) -> bool:
    return bool(expected) and secrets.compare_digest(candidate.encode(), expected.encode())


async def get_request_user(api_key: Optional[str] = Header(None, alias="X-API-KEY")) -> User:
    """
    Resolves the X-API-KEY header to a User. A missing or unknown key is a 401;
    whether the user may edit is decided later by can_edit_content().
    """
    if not api_key:
        logger.warning("Sync request without X-API-KEY header")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing API Key")
    if _matches(api_key, settings["SYNC_API_KEY"]):
        return _sync_editor
    if _matches(api_key, settings.get("READONLY_API_KEY")):
        return _read_only_user
    logger.warning(f"Invalid API Key received: '{api_key[:5]}...'")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing API Key")


def can_edit_content(user: Optional[User]) -> bool:
    return bool(user and user.is_active and EDIT_CAPABILITY in user.capabilities)

#
# End of User_DB_Handling.py
#######################################################################################################################
