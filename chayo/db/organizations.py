"""Database operations for organizations and their team members."""

from typing import Any, Optional

from chayo.core.logging import get_logger
from chayo.db.supabase_client import get_supabase

logger = get_logger(__name__)


def get_organization(org_id: str) -> Optional[dict[str, Any]]:
    """Get an organization by ID."""
    client = get_supabase()
    result = client.table("organizations").select("*").eq("id", org_id).execute()
    return result.data[0] if result.data else None


def get_organization_by_owner(owner_id: str) -> Optional[dict[str, Any]]:
    """Oldest organization owned by a user."""
    client = get_supabase()
    result = (
        client.table("organizations")
        .select("*")
        .eq("owner_id", owner_id)
        .order("created_at")
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def get_active_membership(user_id: str) -> Optional[dict[str, Any]]:
    """First active team membership of a user."""
    client = get_supabase()
    result = (
        client.table("team_members")
        .select("*")
        .eq("user_id", user_id)
        .eq("status", "active")
        .order("created_at")
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def get_membership(organization_id: str, user_id: str) -> Optional[dict[str, Any]]:
    client = get_supabase()
    result = (
        client.table("team_members")
        .select("*")
        .eq("organization_id", organization_id)
        .eq("user_id", user_id)
        .execute()
    )
    return result.data[0] if result.data else None


def add_owner_membership(organization_id: str, user_id: str) -> dict[str, Any]:
    """Insert the ``owner`` team_members row for an organization."""
    client = get_supabase()
    result = (
        client.table("team_members")
        .insert(
            {
                "organization_id": organization_id,
                "user_id": user_id,
                "role": "owner",
                "status": "active",
            }
        )
        .execute()
    )
    return result.data[0] if result.data else {}


def create_organization_with_owner(name: str, slug: str, owner_id: str) -> str:
    """
    Create an organization and its owner membership in one RPC.

    Returns:
        The new organization id

    Raises:
        RuntimeError: If the RPC returns no id
    """
    client = get_supabase()
    result = client.rpc(
        "create_organization_with_owner",
        {"org_name": name, "org_slug": slug, "owner_id": owner_id},
    ).execute()

    data = result.data
    if isinstance(data, list):
        data = data[0] if data else None
    if isinstance(data, dict):
        data = data.get("id") or data.get("create_organization_with_owner")
    if not data:
        raise RuntimeError("create_organization_with_owner returned no id")

    logger.info(f"Created organization {data} for owner {owner_id}")
    return str(data)


def update_organization(org_id: str, updates: dict[str, Any]) -> dict[str, Any]:
    """Apply a partial update to an organization."""
    client = get_supabase()
    result = client.table("organizations").update(updates).eq("id", org_id).execute()
    return result.data[0] if result.data else {}


def update_organization_name(org_id: str, name: str) -> dict[str, Any]:
    return update_organization(org_id, {"name": name})


def set_website_scraping_state(org_id: str, state: str) -> dict[str, Any]:
    return update_organization(org_id, {"website_scraping_state": state})
