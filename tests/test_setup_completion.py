"""Tests for onboarding completion tracking."""

import pytest

from chayo.core.exceptions import AICallError
from chayo.core.schemas_organizations import Organization, QuestionSpec
from chayo.core.tasks import drain_background_tasks
from chayo.services.business_info import BusinessInfoService
from chayo.services.setup_completion import SetupCompletionService, normalize_status_signal
from chayo.services.vibe_cards import VibeCardService
from tests.fakes.fake_llm import VIBE, vibe_synthesis


class RecordingAgentLinks:
    def __init__(self):
        self.organizations = []

    async def maybe_create_agent_chat_link_if_threshold_met(self, organization: Organization):
        self.organizations.append(organization)
        return None


async def _answer(org_id, field_name, value):
    service = BusinessInfoService()
    await service.store_business_question(
        org_id, QuestionSpec(field_name=field_name, question_template=f"¿{field_name}?")
    )
    await service.update_question_as_answered(org_id, field_name, value, 0.9)


@pytest.fixture
def tracker(llm):
    return SetupCompletionService(VibeCardService(llm))


@pytest.mark.parametrize(
    "signal,expected",
    [
        ("setup_complete", "setup_complete"),
        ("Onboarding_Complete", "setup_complete"),
        ("completed", "setup_complete"),
        ("onboarding_in_progress", None),
        (None, None),
    ],
)
def test_normalize_status_signal(signal, expected):
    assert normalize_status_signal(signal) == expected


@pytest.mark.asyncio
async def test_row_is_created_lazily_in_progress(fake_db, organization_row, tracker):
    assert not await tracker.is_completed(organization_row["id"])
    assert await tracker.is_completed(organization_row["id"]) is False

    rows = fake_db.rows("setup_completion", organization_id=organization_row["id"])
    assert len(rows) == 1
    assert rows[0]["setup_status"] == "in_progress"


@pytest.mark.asyncio
async def test_mark_completed_generates_vibe_card(fake_db, organization_row, llm, tracker):
    org_id = organization_row["id"]
    await _answer(org_id, "business_name", "Panadería Luna")
    llm.script(VIBE, vibe_synthesis())

    completion = await tracker.mark_completed(org_id)

    assert completion.is_completed
    assert completion.completed_at is not None
    assert completion.answered_questions == 1
    assert "vibe_card_generated_at" in completion.completion_data
    assert fake_db.rows("vibe_cards", organization_id=org_id)[0]["business_name"] == (
        "Panadería Luna"
    )


@pytest.mark.asyncio
async def test_vibe_card_failure_does_not_block_completion(
    fake_db, organization_row, llm, tracker
):
    org_id = organization_row["id"]
    await _answer(org_id, "business_name", "Luna")
    llm.script(VIBE, AICallError("quota"))

    completion = await tracker.mark_completed(org_id)

    assert completion.is_completed
    assert completion.completion_data["vibe_card_generation_failed"] is True
    assert completion.completion_data["vibe_card_error"]
    assert fake_db.rows("vibe_cards") == []


@pytest.mark.asyncio
async def test_completion_without_answers_flags_missing_card(fake_db, organization_row, tracker):
    completion = await tracker.mark_completed(organization_row["id"])

    assert completion.is_completed
    assert completion.completion_data["vibe_card_generation_failed"] is True


@pytest.mark.asyncio
async def test_mark_completed_is_idempotent(fake_db, organization_row, llm, tracker):
    org_id = organization_row["id"]
    await _answer(org_id, "business_name", "Luna")
    llm.script(VIBE, vibe_synthesis())

    first = await tracker.mark_completed(org_id)
    second = await tracker.mark_completed(org_id)

    assert first.completed_at == second.completed_at
    assert len(llm.calls_for(VIBE)) == 1


@pytest.mark.asyncio
async def test_completed_status_is_monotonic(fake_db, organization_row, tracker):
    org_id = organization_row["id"]
    await tracker.mark_completed(org_id)

    assert await tracker.update_onboarding_progress(org_id, "onboarding_in_progress") is True
    assert await tracker.is_completed(org_id)


@pytest.mark.asyncio
async def test_update_progress_with_completion_signal(fake_db, organization_row, tracker):
    org_id = organization_row["id"]

    assert await tracker.update_onboarding_progress(org_id, "setup_complete") is True
    row = fake_db.rows("setup_completion", organization_id=org_id)[0]
    assert row["completion_data"]["source"] == "ai_signal"


@pytest.mark.asyncio
async def test_agent_link_is_scheduled_after_completion(fake_db, organization_row, llm):
    links = RecordingAgentLinks()
    tracker = SetupCompletionService(VibeCardService(llm), agent_links=links)

    await tracker.mark_completed(organization_row["id"])
    await drain_background_tasks()

    assert [o.id for o in links.organizations] == [organization_row["id"]]


@pytest.mark.asyncio
async def test_reset_reverts_status_and_answers(fake_db, organization_row, tracker):
    org_id = organization_row["id"]
    await _answer(org_id, "business_name", "Luna")
    await tracker.mark_completed(org_id)

    await tracker.reset_onboarding(org_id)

    assert not await tracker.is_completed(org_id)
    progress = await tracker.get_onboarding_progress(org_id)
    assert [q.field_name for q in progress.pending_questions] == ["business_name"]
