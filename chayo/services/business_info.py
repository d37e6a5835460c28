"""Question ledger operations for an organization."""

from chayo.core.logging import get_logger
from chayo.core.schemas_organizations import QuestionRecord, QuestionSpec
from chayo.db import business_info_fields as fields_db
from chayo.db import organizations as organizations_db

logger = get_logger(__name__)

BUSINESS_NAME_FIELD = "business_name"


class BusinessInfoService:
    """Reads and writes ``business_info_fields`` rows."""

    async def store_business_question(
        self, organization_id: str, question: QuestionSpec
    ) -> QuestionRecord | None:
        """Insert ``question`` unless the same unanswered question is already pending."""
        row = fields_db.insert_question_if_new(organization_id, question)
        if not row:
            return None
        logger.info(
            f"Stored question '{question.field_name}'",
            extra={"organization_id": organization_id, "field_type": question.field_type.value},
        )
        return QuestionRecord.model_validate(row)

    async def get_pending_questions(self, organization_id: str) -> list[QuestionRecord]:
        return [
            QuestionRecord.model_validate(row)
            for row in fields_db.list_pending_questions(organization_id)
        ]

    async def get_oldest_pending_question(self, organization_id: str) -> QuestionRecord | None:
        row = fields_db.get_oldest_pending_question(organization_id)
        return QuestionRecord.model_validate(row) if row else None

    async def get_answered_questions(self, organization_id: str) -> list[QuestionRecord]:
        return [
            QuestionRecord.model_validate(row)
            for row in fields_db.list_answered_questions(organization_id)
        ]

    async def update_question_as_answered(
        self,
        organization_id: str,
        field_name: str,
        answer: str,
        confidence: float | None,
    ) -> bool:
        """
        Record an answer. Answering ``business_name`` also renames the organization.

        The rename is best-effort; a failure there never undoes the answer.
        """
        updated = fields_db.mark_question_answered(organization_id, field_name, answer, confidence)
        if not updated:
            logger.warning(
                f"No pending question '{field_name}' to mark answered",
                extra={"organization_id": organization_id},
            )
            return False

        if field_name == BUSINESS_NAME_FIELD:
            name = answer.strip()
            if name:
                try:
                    organizations_db.update_organization_name(organization_id, name)
                    logger.info(f"Organization {organization_id} renamed to '{name}'")
                except Exception as e:
                    logger.warning(f"Failed to rename organization {organization_id}: {e}")

        return True

    async def get_business_info_summary(self, organization_id: str) -> dict[str, str]:
        """``{field_name: value}`` for every answered question; later answers win."""
        return {
            q.field_name: q.field_value
            for q in await self.get_answered_questions(organization_id)
            if q.field_value
        }
