"""Embedding-backed business memory for each organization.

Memory is append-only. Conflicting writes add a new row next to the old one;
retrieval always returns the most similar K rows, so newer facts surface
alongside older ones rather than replacing them in place.
"""

from collections.abc import Awaitable, Callable
from typing import Any, Literal

from chayo.chains.classify_relevance import is_business_relevant
from chayo.core.config import Settings, get_settings
from chayo.core.embeddings import embed_texts_async
from chayo.core.llm import CompletionClient
from chayo.core.logging import get_logger
from chayo.core.schemas_chat import ChatMessage, ChatRole
from chayo.core.schemas_organizations import (
    ConflictAction,
    ConflictResolution,
    MemoryMatch,
    MemoryRecord,
    MemoryUpdate,
    MemoryUpdateResult,
)
from chayo.db import conversation_embeddings as embeddings_db

logger = get_logger(__name__)

Embedder = Callable[[list[str]], Awaitable[list[list[float]]]]


class BusinessKnowledgeStore:
    """Write, search and reconcile conversation memory."""

    def __init__(
        self,
        completion_client: CompletionClient | None = None,
        embedder: Embedder = embed_texts_async,
        settings: Settings | None = None,
    ):
        self.completion_client = completion_client
        self.embedder = embedder
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def process_business_conversations(
        self,
        organization_id: str,
        texts: list[str],
        segment_type: str = "conversation",
        metadata: dict[str, Any] | None = None,
    ) -> list[MemoryRecord]:
        """Embed ``texts`` in one call and insert one row per text."""
        texts = [t for t in texts if t and t.strip()]
        if not texts:
            return []

        vectors = await self.embedder(texts)
        rows = [
            {
                "organization_id": organization_id,
                "conversation_segment": text,
                "embedding": vector,
                "segment_type": segment_type,
                "metadata": metadata or {},
            }
            for text, vector in zip(texts, vectors)
        ]
        inserted = embeddings_db.insert_embeddings(rows)
        return [MemoryRecord.model_validate(_without_embedding(row)) for row in inserted]

    async def store_exchange(self, organization_id: str, messages: list[ChatMessage]) -> bool:
        """
        Store the latest assistant→user pair if it carries business information.

        Returns:
            True when a memory row was written
        """
        if len(messages) < 2:
            return False

        previous, current = messages[-2], messages[-1]
        if previous.role != ChatRole.ASSISTANT or current.role != ChatRole.USER:
            logger.debug("No complete Q&A pair found, skipping storage")
            return False

        if self.completion_client is not None:
            relevant = await is_business_relevant(
                self.completion_client,
                current.content,
                previous.content,
                "embedding_storage",
            )
            if not relevant:
                logger.info(
                    "Skipped storing conversation, not business relevant",
                    extra={"organization_id": organization_id},
                )
                return False

        text = f"Assistant: {previous.content}\nUser: {current.content}"
        records = await self.process_business_conversations(organization_id, [text])
        return bool(records)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def search_similar_conversations(
        self,
        organization_id: str,
        query_embedding: list[float],
        threshold: float | None = None,
        count: int | None = None,
    ) -> list[MemoryMatch]:
        """Matches for one organization, most similar first."""
        rows = embeddings_db.match_conversation_embeddings(
            organization_id,
            query_embedding,
            self.settings.MEMORY_MATCH_THRESHOLD if threshold is None else threshold,
            self.settings.MEMORY_MATCH_COUNT if count is None else count,
        )
        matches = [
            MemoryMatch(
                id=str(row["id"]),
                conversation_segment=row["conversation_segment"],
                segment_type=row.get("segment_type") or "conversation",
                metadata=row.get("metadata") or {},
                distance=float(row.get("similarity", row.get("distance", 0.0))),
            )
            for row in rows
        ]
        matches.sort(key=lambda m: m.distance, reverse=True)
        return matches

    async def search_text(
        self,
        organization_id: str,
        query: str,
        threshold: float | None = None,
        count: int | None = None,
    ) -> list[MemoryMatch]:
        vectors = await self.embedder([query])
        return await self.search_similar_conversations(
            organization_id, vectors[0], threshold=threshold, count=count
        )

    async def get_business_knowledge_summary(self, organization_id: str) -> str:
        """Latest segments joined by newlines; empty string on failure."""
        try:
            rows = embeddings_db.list_recent_segments(
                organization_id, self.settings.KNOWLEDGE_SUMMARY_LIMIT
            )
        except Exception as e:
            logger.warning(f"Failed to load business knowledge for {organization_id}: {e}")
            return ""
        return "\n".join(row["conversation_segment"] for row in rows)

    # ------------------------------------------------------------------
    # Conflict resolution
    # ------------------------------------------------------------------

    def resolve_conflict(self, update: MemoryUpdate, best_similarity: float) -> ConflictResolution:
        confidence = (
            update.confidence
            if update.confidence is not None
            else self.settings.MEMORY_DEFAULT_CONFIDENCE
        )
        if (
            confidence > self.settings.MEMORY_REPLACE_CONFIDENCE
            and best_similarity > self.settings.MEMORY_REPLACE_SIMILARITY
        ):
            return ConflictResolution(
                action=ConflictAction.REPLACE,
                confidence=confidence,
                reason="High confidence update of a near-identical memory",
            )
        return ConflictResolution(
            action=ConflictAction.KEEP_BOTH,
            confidence=confidence,
            reason="Similar memory exists; keeping both for context",
        )

    async def update_memory(
        self,
        organization_id: str,
        update: MemoryUpdate,
        strategy: Literal["auto", "manual"] = "auto",
    ) -> MemoryUpdateResult:
        try:
            vectors = await self.embedder([update.text])
            conflicts = await self.search_similar_conversations(
                organization_id,
                vectors[0],
                threshold=self.settings.MEMORY_CONFLICT_THRESHOLD,
                count=self.settings.MEMORY_MATCH_COUNT,
            )

            metadata = {**update.metadata}
            if update.confidence is not None:
                metadata["confidence"] = update.confidence
            if update.reason:
                metadata["reason"] = update.reason

            if not conflicts:
                memory_id = self._insert_one(organization_id, update, vectors[0], metadata)
                return MemoryUpdateResult(success=True, action="created", memory_id=memory_id)

            if strategy == "manual":
                return MemoryUpdateResult(
                    success=False, action="conflicts_detected", conflicts=conflicts
                )

            resolution = self.resolve_conflict(update, conflicts[0].distance)
            metadata["conflict_resolution"] = resolution.action.value
            metadata["supersedes"] = [c.id for c in conflicts]
            memory_id = self._insert_one(organization_id, update, vectors[0], metadata)

            if resolution.action == ConflictAction.REPLACE:
                action = "replaced"
            else:
                action = "created_with_conflicts"
            logger.info(
                f"Memory update resolved as {resolution.action.value}",
                extra={"organization_id": organization_id, "conflicts": len(conflicts)},
            )
            return MemoryUpdateResult(
                success=True,
                action=action,
                memory_id=memory_id,
                conflicts=conflicts,
                resolution=resolution,
            )
        except Exception as e:
            logger.error(f"Memory update failed for {organization_id}: {e}", exc_info=True)
            return MemoryUpdateResult(success=False, action="error")

    def _insert_one(
        self,
        organization_id: str,
        update: MemoryUpdate,
        vector: list[float],
        metadata: dict[str, Any],
    ) -> str:
        inserted = embeddings_db.insert_embeddings(
            [
                {
                    "organization_id": organization_id,
                    "conversation_segment": update.text,
                    "embedding": vector,
                    "segment_type": update.type,
                    "metadata": metadata,
                }
            ]
        )
        return str(inserted[0]["id"]) if inserted else ""

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def delete_organization_memory(self, organization_id: str) -> int:
        return embeddings_db.delete_organization_embeddings(organization_id)

    async def delete_memory(self, organization_id: str, memory_id: str) -> bool:
        return embeddings_db.delete_embedding(organization_id, memory_id)


def _without_embedding(row: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in row.items() if k != "embedding"}
