"""Database access layer for the per-organization question ledger.

Rows live in ``business_info_fields``. A row is created unanswered and only
ever transitions to answered (or back, through an administrative reset).
"""

from datetime import datetime, timezone
from typing import Any, Optional

from chayo.core.logging import get_logger
from chayo.core.schemas_organizations import QuestionSpec
from chayo.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "business_info_fields"


def find_unanswered_by_template(organization_id: str, question_template: str) -> Optional[dict]:
    client = get_supabase()
    result = (
        client.table(TABLE)
        .select("*")
        .eq("organization_id", organization_id)
        .eq("question_template", question_template)
        .eq("is_answered", False)
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def insert_question_if_new(organization_id: str, question: QuestionSpec) -> Optional[dict]:
    """
    Insert a question unless an identical unanswered one already exists.

    Returns:
        The inserted row, or None when an unanswered duplicate exists
    """
    if find_unanswered_by_template(organization_id, question.question_template):
        logger.debug(
            f"Question already pending for org {organization_id}: {question.field_name}",
        )
        return None

    client = get_supabase()
    data: dict[str, Any] = {
        "organization_id": organization_id,
        "field_name": question.field_name,
        "field_type": question.field_type.value,
        "question_template": question.question_template,
        "multiple_choices": question.multiple_choices,
        "allow_multiple": question.allow_multiple,
        "is_answered": False,
    }
    # Remove None values to let DB defaults work
    data = {k: v for k, v in data.items() if v is not None}

    result = client.table(TABLE).insert(data).execute()
    return result.data[0] if result.data else {}


def list_pending_questions(organization_id: str) -> list[dict]:
    """Unanswered questions, oldest first."""
    client = get_supabase()
    result = (
        client.table(TABLE)
        .select("*")
        .eq("organization_id", organization_id)
        .eq("is_answered", False)
        .order("created_at")
        .execute()
    )
    return result.data or []


def get_oldest_pending_question(organization_id: str) -> Optional[dict]:
    client = get_supabase()
    result = (
        client.table(TABLE)
        .select("*")
        .eq("organization_id", organization_id)
        .eq("is_answered", False)
        .order("created_at")
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


def list_answered_questions(organization_id: str) -> list[dict]:
    """Answered questions, oldest first."""
    client = get_supabase()
    result = (
        client.table(TABLE)
        .select("*")
        .eq("organization_id", organization_id)
        .eq("is_answered", True)
        .order("created_at")
        .execute()
    )
    return result.data or []


def mark_question_answered(
    organization_id: str,
    field_name: str,
    value: str,
    confidence: float | None,
) -> list[dict]:
    """Fill the answer on the unanswered rows for ``field_name``."""
    client = get_supabase()
    result = (
        client.table(TABLE)
        .update(
            {
                "field_value": value,
                "confidence": confidence,
                "is_answered": True,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        .eq("organization_id", organization_id)
        .eq("field_name", field_name)
        .eq("is_answered", False)
        .execute()
    )
    return result.data or []


def count_answered_questions(organization_id: str) -> int:
    return len(list_answered_questions(organization_id))


def reset_answers(organization_id: str) -> int:
    """Mark every question of an organization as unanswered again."""
    client = get_supabase()
    result = (
        client.table(TABLE)
        .update(
            {
                "is_answered": False,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        .eq("organization_id", organization_id)
        .execute()
    )
    return len(result.data or [])
