"""Database access layer for conversation embeddings (organization memory)."""

from typing import Any

from chayo.core.logging import get_logger
from chayo.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "conversation_embeddings"


def insert_embeddings(rows: list[dict[str, Any]]) -> list[dict]:
    """
    Bulk insert memory rows.

    Args:
        rows: Dicts with organization_id, conversation_segment, embedding,
            segment_type and metadata

    Returns:
        Inserted rows
    """
    if not rows:
        return []

    supabase = get_supabase()
    try:
        response = supabase.table(TABLE).insert(rows).execute()
        logger.info(
            f"Inserted {len(rows)} conversation embeddings",
            extra={"organization_id": rows[0].get("organization_id")},
        )
        return response.data or []
    except Exception as e:
        logger.error(f"Failed to insert conversation embeddings: {e}")
        raise


def match_conversation_embeddings(
    organization_id: str,
    query_embedding: list[float],
    match_threshold: float,
    match_count: int,
) -> list[dict]:
    """
    Vector search scoped to one organization.

    Returns:
        Rows with a ``similarity`` score, best first
    """
    supabase = get_supabase()
    try:
        response = supabase.rpc(
            "match_conversation_embeddings",
            {
                "query_embedding": query_embedding,
                "match_threshold": match_threshold,
                "match_count": match_count,
                "org_id": organization_id,
            },
        ).execute()

        if not response.data:
            return []

        logger.debug(
            f"Found {len(response.data)} matching memories",
            extra={"organization_id": organization_id, "match_count": match_count},
        )
        return response.data
    except Exception as e:
        logger.error(f"Failed to search conversation embeddings: {e}")
        raise


def list_recent_segments(organization_id: str, limit: int) -> list[dict]:
    supabase = get_supabase()
    response = (
        supabase.table(TABLE)
        .select("id, conversation_segment, segment_type, created_at")
        .eq("organization_id", organization_id)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return response.data or []


def delete_organization_embeddings(organization_id: str) -> int:
    supabase = get_supabase()
    response = supabase.table(TABLE).delete().eq("organization_id", organization_id).execute()
    return len(response.data or [])


def delete_embedding(organization_id: str, memory_id: str) -> bool:
    supabase = get_supabase()
    response = (
        supabase.table(TABLE)
        .delete()
        .eq("organization_id", organization_id)
        .eq("id", memory_id)
        .execute()
    )
    return bool(response.data)
