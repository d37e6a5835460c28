"""Tests for the per-organization question ledger."""

import pytest

from chayo.core.schemas_organizations import FieldType, QuestionSpec
from chayo.services.business_info import BusinessInfoService


def _spec(field_name="business_name", template="¿Cómo se llama tu negocio?", **kwargs):
    return QuestionSpec(field_name=field_name, question_template=template, **kwargs)


@pytest.mark.asyncio
async def test_store_question_inserts_unanswered_row(fake_db, organization_row):
    service = BusinessInfoService()

    record = await service.store_business_question(organization_row["id"], _spec())

    assert record is not None
    assert record.is_answered is False
    assert len(fake_db.rows("business_info_fields")) == 1


@pytest.mark.asyncio
async def test_duplicate_unanswered_question_is_not_inserted(fake_db, organization_row):
    service = BusinessInfoService()
    org_id = organization_row["id"]

    await service.store_business_question(org_id, _spec())
    second = await service.store_business_question(org_id, _spec())

    assert second is None
    assert len(fake_db.rows("business_info_fields", organization_id=org_id)) == 1


@pytest.mark.asyncio
async def test_same_question_can_be_asked_again_once_answered(fake_db, organization_row):
    service = BusinessInfoService()
    org_id = organization_row["id"]

    await service.store_business_question(org_id, _spec(field_name="hours", template="¿Horario?"))
    await service.update_question_as_answered(org_id, "hours", "7 a 14", 0.9)
    again = await service.store_business_question(
        org_id, _spec(field_name="hours", template="¿Horario?")
    )

    assert again is not None
    assert len(fake_db.rows("business_info_fields", organization_id=org_id)) == 2


@pytest.mark.asyncio
async def test_questions_are_scoped_per_organization(fake_db, organization_row):
    service = BusinessInfoService()
    other = fake_db.seed("organizations", name="Other", owner_id="user-2")

    await service.store_business_question(organization_row["id"], _spec())
    await service.store_business_question(other["id"], _spec())

    assert len(await service.get_pending_questions(organization_row["id"])) == 1
    assert len(await service.get_pending_questions(other["id"])) == 1


@pytest.mark.asyncio
async def test_oldest_pending_question_is_returned_first(fake_db, organization_row):
    service = BusinessInfoService()
    org_id = organization_row["id"]

    await service.store_business_question(org_id, _spec())
    await service.store_business_question(org_id, _spec(field_name="type", template="¿Giro?"))

    oldest = await service.get_oldest_pending_question(org_id)

    assert oldest.field_name == "business_name"


@pytest.mark.asyncio
async def test_answering_business_name_renames_organization(fake_db, organization_row):
    service = BusinessInfoService()
    org_id = organization_row["id"]
    await service.store_business_question(org_id, _spec())

    updated = await service.update_question_as_answered(
        org_id, "business_name", "  Panadería Luna ", 0.95
    )

    assert updated is True
    assert fake_db.rows("organizations", id=org_id)[0]["name"] == "Panadería Luna"
    row = fake_db.rows("business_info_fields", organization_id=org_id)[0]
    assert row["is_answered"] is True
    assert row["confidence"] == 0.95


@pytest.mark.asyncio
async def test_rename_failure_keeps_answer(fake_db, organization_row):
    service = BusinessInfoService()
    org_id = organization_row["id"]
    await service.store_business_question(org_id, _spec())
    fake_db.failing_tables.add("organizations")

    updated = await service.update_question_as_answered(org_id, "business_name", "Luna", 0.9)

    assert updated is True
    assert fake_db.rows("business_info_fields", organization_id=org_id)[0]["is_answered"]


@pytest.mark.asyncio
async def test_answering_without_pending_row_returns_false(fake_db, organization_row):
    service = BusinessInfoService()

    assert not await service.update_question_as_answered(
        organization_row["id"], "missing", "x", 0.9
    )


@pytest.mark.asyncio
async def test_summary_maps_answered_fields(fake_db, organization_row):
    service = BusinessInfoService()
    org_id = organization_row["id"]
    await service.store_business_question(
        org_id,
        _spec(
            field_name="payment",
            template="¿Formas de pago?",
            field_type=FieldType.MULTIPLE_CHOICE,
            multiple_choices=["Efectivo", "Tarjeta"],
        ),
    )
    await service.store_business_question(org_id, _spec(field_name="type", template="¿Giro?"))
    await service.update_question_as_answered(org_id, "payment", "Efectivo", 0.8)

    assert await service.get_business_info_summary(org_id) == {"payment": "Efectivo"}


@pytest.mark.asyncio
async def test_unknown_field_type_reads_as_text(fake_db, organization_row):
    fake_db.seed(
        "business_info_fields",
        organization_id=organization_row["id"],
        field_name="mood",
        field_type="emoji",
        question_template="¿Cómo te sientes?",
        is_answered=False,
    )

    pending = await BusinessInfoService().get_oldest_pending_question(organization_row["id"])

    assert pending.field_type == FieldType.TEXT
