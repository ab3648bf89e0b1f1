"""Shared fixtures for packforge tests."""

from pathlib import Path

import pytest

from packforge.config import load_quality_rules
from packforge.models.ingest import DraftPack, DraftPrompt, PlannedPack
from packforge.parsers.template_loader import load_scenario_template

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir():
    return FIXTURES_DIR


@pytest.fixture
def rules():
    """Quality rules shipped with the package."""
    return load_quality_rules()


@pytest.fixture
def government_template():
    return load_scenario_template("government_office")


@pytest.fixture
def buergeramt_text():
    return (FIXTURES_DIR / "buergeramt.txt").read_text(encoding="utf-8")


@pytest.fixture
def planned_pack():
    """A planned government_office pack, as the planner would produce it."""
    return PlannedPack(
        pack_id="government_office_request-appointment_A2_1a2b3c4d",
        title="Government Office - Termin vereinbaren (A2)",
        primary_structure="Verb + Termin/Unterlagen + Zeitangabe beim Amt",
        variation_slots=["subject", "verb", "object", "time", "location"],
        register="formal",
        tags=["government_office", "request_appointment", "termin"],
        target_chunks=["0123456789"],
        top_tokens=["termin", "anmeldung", "bürgeramt"],
        intent_category="request_appointment",
    )


def _make_prompt(index: int, text: str, **kwargs) -> DraftPrompt:
    prompt_id = f"prompt-{index:03d}"
    defaults = {
        "id": prompt_id,
        "text": text,
        "intent": "request",
        "gloss_en": "I need to make an appointment.",
        "natural_en": "I'd like to schedule an appointment.",
        "audio_url": f"/v1/audio/test-pack/{prompt_id}.mp3",
        "slots_changed": ["subject", "verb"],
    }
    defaults.update(kwargs)
    return DraftPrompt(**defaults)


def _make_pack(prompts, scenario="government_office", level="A2", register="formal") -> DraftPack:
    return DraftPack(
        id="test-pack",
        title="Test Pack",
        level=level,
        scenario=scenario,
        register=register,
        primary_structure="Verb + Objekt",
        prompts=prompts,
    )


@pytest.fixture
def make_prompt():
    """Factory for DraftPrompt objects with defaults that pass every gate."""
    return _make_prompt


@pytest.fixture
def make_pack():
    """Factory for DraftPack objects around a prompt list."""
    return _make_pack
