"""Database access layer for ``setup_completion`` (one row per organization)."""

from datetime import datetime, timezone
from typing import Any, Optional

from chayo.db.supabase_client import get_supabase

TABLE = "setup_completion"


def get_setup_completion(organization_id: str) -> Optional[dict]:
    client = get_supabase()
    result = client.table(TABLE).select("*").eq("organization_id", organization_id).execute()
    return result.data[0] if result.data else None


def create_setup_completion(organization_id: str) -> dict:
    """Insert the in-progress row; an existing row is left untouched."""
    client = get_supabase()
    result = (
        client.table(TABLE)
        .upsert(
            {
                "organization_id": organization_id,
                "setup_status": "in_progress",
                "answered_questions": 0,
                "completion_data": {},
            },
            on_conflict="organization_id",
            ignore_duplicates=True,
        )
        .execute()
    )
    if result.data:
        return result.data[0]
    return get_setup_completion(organization_id) or {}


def update_setup_completion(organization_id: str, updates: dict[str, Any]) -> dict:
    client = get_supabase()
    updates = {**updates, "updated_at": datetime.now(timezone.utc).isoformat()}
    result = (
        client.table(TABLE).update(updates).eq("organization_id", organization_id).execute()
    )
    return result.data[0] if result.data else {}


def mark_setup_completed(organization_id: str, completion_data: dict[str, Any]) -> dict:
    """Move an in-progress row to completed; a completed row is not touched."""
    client = get_supabase()
    now = datetime.now(timezone.utc).isoformat()
    result = (
        client.table(TABLE)
        .update(
            {
                "setup_status": "completed",
                "completed_at": now,
                "completion_data": completion_data,
                "updated_at": now,
            }
        )
        .eq("organization_id", organization_id)
        .neq("setup_status", "completed")
        .execute()
    )
    return result.data[0] if result.data else {}
