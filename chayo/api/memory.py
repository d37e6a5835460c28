"""Organization memory endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from chayo.api.deps import get_knowledge_store, require_org_access
from chayo.core.schemas_chat import MemoryUpdateRequest
from chayo.core.schemas_organizations import MemoryUpdate
from chayo.services.knowledge_store import BusinessKnowledgeStore

router = APIRouter()


@router.get("/organizations/{organization_id}/memory")
async def search_memory(
    q: str = Query(..., min_length=1),
    threshold: float | None = Query(default=None, ge=0.0, le=1.0),
    count: int | None = Query(default=None, ge=1, le=50),
    organization_id: str = Depends(require_org_access),
    store: BusinessKnowledgeStore = Depends(get_knowledge_store),
) -> dict:
    matches = await store.search_text(organization_id, q, threshold=threshold, count=count)
    return {"matches": [m.model_dump() for m in matches]}


@router.post("/organizations/{organization_id}/memory")
async def update_memory(
    body: MemoryUpdateRequest,
    organization_id: str = Depends(require_org_access),
    store: BusinessKnowledgeStore = Depends(get_knowledge_store),
) -> dict:
    update = MemoryUpdate.model_validate(body.model_dump(exclude={"strategy"}))
    result = await store.update_memory(organization_id, update, strategy=body.strategy)
    return result.model_dump(mode="json")


@router.delete("/organizations/{organization_id}/memory")
async def delete_organization_memory(
    organization_id: str = Depends(require_org_access),
    store: BusinessKnowledgeStore = Depends(get_knowledge_store),
) -> dict:
    deleted = await store.delete_organization_memory(organization_id)
    return {"deleted": deleted}


@router.delete("/organizations/{organization_id}/memory/{memory_id}")
async def delete_memory(
    memory_id: str,
    organization_id: str = Depends(require_org_access),
    store: BusinessKnowledgeStore = Depends(get_knowledge_store),
) -> dict:
    if not await store.delete_memory(organization_id, memory_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Memory not found")
    return {"deleted": 1}
