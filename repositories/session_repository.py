"""
Session lookup for `created_by` stamping.

Authentication itself is handled elsewhere; this module only asks the
Supabase auth client who, if anyone, is signed in.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from repositories.client import get_supabase


def current_actor() -> Optional[UUID]:
    """Id of the signed-in user, or None when there is no session."""

    session = get_supabase().auth.get_session()
    if session is None or session.user is None:
        return None
    return UUID(str(session.user.id))


__all__ = ["current_actor"]
