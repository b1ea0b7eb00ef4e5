from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field


class State(BaseModel):
    """
    Persistent uploader state serialized to JSON and encrypted at rest.

    Fields
    - session: exported MediaFire session (`token`, `secret`, `server_time`,
      `identity`), or None before the first login. The secret inside rotates
      on the server's instruction, so this must be written back after every
      run that made signed calls.
    - uploads_completed: running count of confirmed uploads.

    Notes
    - The session dict is stored verbatim; its string values are never
      re-parsed, so the secret round-trips exactly.
    """

    session: Optional[Dict[str, str]] = Field(
        default=None,
        description="Exported session, or None when logged out",
    )
    uploads_completed: int = Field(default=0, ge=0)

    @classmethod
    def empty(cls) -> "State":
        """Convenience constructor for a fresh, empty state."""
        return cls()
