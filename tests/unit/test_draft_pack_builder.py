"""Unit tests for draft pack assembly."""

import pytest

from packforge.generators.draft_pack_builder import (
    build_draft_pack,
    build_session_plan,
    determine_cognitive_load,
    determine_drill_type,
    estimate_minutes,
)
from packforge.models.ingest import CognitiveLoad, DrillType, IngestionMetadata, InputSource


def _prompts(make_prompt, count):
    return [
        make_prompt(i, f"Ich brauche einen Termin für die Anmeldung {i}.")
        for i in range(1, count + 1)
    ]


class TestEstimateMinutes:
    @pytest.mark.parametrize("count,expected", [(0, 15), (12, 15), (15, 15), (40, 40), (500, 120)])
    def test_clamped(self, count, expected):
        assert estimate_minutes(count) == expected


class TestDrillType:
    def test_roleplay_scenarios(self):
        assert determine_drill_type("restaurant", "Verb + Objekt") == DrillType.ROLEPLAY_BOUNDED

    def test_pattern_switch_from_structure(self):
        assert determine_drill_type("shopping", "Pattern switch: Frage/Antwort") == (
            DrillType.PATTERN_SWITCH
        )

    def test_substitution_default(self):
        assert determine_drill_type("housing", "Verb + Objekt") == DrillType.SUBSTITUTION


class TestCognitiveLoad:
    @pytest.mark.parametrize(
        "level,slots,expected",
        [
            ("A1", 2, CognitiveLoad.LOW),
            ("A1", 4, CognitiveLoad.MEDIUM),
            ("a2", 3, CognitiveLoad.MEDIUM),
            ("A2", 5, CognitiveLoad.HIGH),
            ("B1", 2, CognitiveLoad.HIGH),
        ],
    )
    def test_load(self, level, slots, expected):
        assert determine_cognitive_load(level, slots) == expected


class TestSessionPlan:
    def test_steps_take_prompts_in_order(self, government_template, make_prompt):
        prompts = _prompts(make_prompt, government_template.total_prompt_count)
        plan = build_session_plan(government_template, prompts)

        assert [s.id for s in plan.steps] == [s.id for s in government_template.step_blueprint]
        flattened = [pid for step in plan.steps for pid in step.prompt_ids]
        assert flattened == [p.id for p in prompts]
        for step, blueprint in zip(plan.steps, government_template.step_blueprint):
            assert len(step.prompt_ids) == blueprint.prompt_count


class TestBuildDraftPack:
    def test_fields_come_from_plan_and_template(
        self, planned_pack, government_template, make_prompt
    ):
        prompts = _prompts(make_prompt, government_template.total_prompt_count)
        pack = build_draft_pack(
            planned_pack,
            prompts,
            government_template,
            "government_office",
            "A2",
            IngestionMetadata(source=InputSource.TEXT),
        )

        assert pack.id == planned_pack.pack_id
        assert pack.title == planned_pack.title
        assert pack.speech_register == "formal"
        assert pack.estimated_minutes == 15
        assert pack.outline == [s.title for s in government_template.step_blueprint]
        assert pack.analytics.drill_type == DrillType.ROLEPLAY_BOUNDED.value
        assert pack.analytics.levers == planned_pack.variation_slots
        assert pack.analytics.cognitive_load == CognitiveLoad.HIGH.value
        assert pack.ingestion_metadata.chunk_ids == planned_pack.target_chunks

    def test_explicit_chunk_ids_are_kept(self, planned_pack, government_template, make_prompt):
        metadata = IngestionMetadata(source=InputSource.TEXT, chunk_ids=["ffffffffff"])
        pack = build_draft_pack(
            planned_pack,
            _prompts(make_prompt, 3),
            government_template,
            "government_office",
            "A2",
            metadata,
        )
        assert pack.ingestion_metadata.chunk_ids == ["ffffffffff"]

    def test_content_json_uses_wire_keys(self, planned_pack, government_template, make_prompt):
        pack = build_draft_pack(
            planned_pack,
            _prompts(make_prompt, 3),
            government_template,
            "government_office",
            "A2",
            IngestionMetadata(source=InputSource.PDF, source_path="doc.pdf"),
        )
        data = pack.to_content_json()

        assert data["_ingestionMetadata"]["source"] == "pdf"
        assert data["_ingestionMetadata"]["sourcePath"] == "doc.pdf"
        assert data["register"] == "formal"
        assert data["sessionPlan"]["steps"][0]["promptIds"] == [
            "prompt-001", "prompt-002", "prompt-003",
        ]
        assert "gloss_en" in data["prompts"][0]
        assert "_ingestionMetadata" not in pack.to_content_json(include_metadata=False)
