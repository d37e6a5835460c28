"""Database access layer for vibe cards (one per organization)."""

from datetime import datetime, timezone
from typing import Any, Optional

from chayo.db.supabase_client import get_supabase

TABLE = "vibe_cards"


def get_vibe_card(organization_id: str) -> Optional[dict]:
    client = get_supabase()
    result = client.table(TABLE).select("*").eq("organization_id", organization_id).execute()
    return result.data[0] if result.data else None


def upsert_vibe_card(organization_id: str, row: dict[str, Any]) -> dict:
    """Insert or replace the organization's card."""
    client = get_supabase()
    data = {
        **row,
        "organization_id": organization_id,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }
    result = client.table(TABLE).upsert(data, on_conflict="organization_id").execute()
    return result.data[0] if result.data else {}


def update_vibe_card(organization_id: str, updates: dict[str, Any]) -> dict:
    client = get_supabase()
    updates = {**updates, "updated_at": datetime.now(timezone.utc).isoformat()}
    result = (
        client.table(TABLE).update(updates).eq("organization_id", organization_id).execute()
    )
    return result.data[0] if result.data else {}
