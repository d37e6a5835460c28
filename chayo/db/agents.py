"""Database access layer for organization agents (public chat links)."""

from typing import Optional

from chayo.db.supabase_client import get_supabase


def get_agent_for_organization(organization_id: str) -> Optional[dict]:
    client = get_supabase()
    result = (
        client.table("agents")
        .select("*")
        .eq("organization_id", organization_id)
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def create_agent(organization_id: str, name: str, slug: str) -> dict:
    client = get_supabase()
    result = (
        client.table("agents")
        .insert(
            {
                "organization_id": organization_id,
                "name": name,
                "slug": slug,
                "is_active": True,
            }
        )
        .execute()
    )
    return result.data[0] if result.data else {}
