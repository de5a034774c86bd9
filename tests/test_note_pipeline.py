import pytest

from conftest import FakeSearch

from studyaid.services.errors import ForbiddenError, InputError, NotFoundError, ParseError, ProviderError, QuotaExhaustedError
from studyaid.services.llm.prompts import IMAGES_ONLY_BLOCK
from studyaid.services.note_pipeline import process_note
from studyaid.services.notes import create_note, get_note, note_to_dict

PLANT_NOTES = "Photosynthesis converts light energy into chemical energy in chloroplasts."


def _note(db, content=PLANT_NOTES):
    return create_note(db, user_id="user-1", content=content, title="Biology")


def test_happy_path_completes_note(db, gemini, providers, materials_text):
    note = _note(db)
    gemini.ok(materials_text)

    result = process_note(db, providers, note_id=note.id, content=PLANT_NOTES)

    assert result.enhanced_with_internet is False
    stored = note_to_dict(get_note(db, note.id))
    assert stored["processing_status"] == "completed"
    assert stored["summary"].startswith("Photosynthesis")
    assert 5 <= len(stored["key_points"]) <= 8
    assert 8 <= len(stored["generated_flashcards"]) <= 12
    assert 6 <= len(stored["generated_qa"]) <= 10
    assert stored["key_points"][0] == "Happens in chloroplasts"
    assert stored["generated_flashcards"][0]["front"] == "Where does photosynthesis happen?"
    assert stored["generated_qa"][0]["answer"] == "Oxygen"
    assert stored["error"] is None
    assert len(gemini.calls) == 1
    assert "Additional Research Context" not in gemini.prompt()


def test_quota_on_primary_falls_back_to_cheaper_models(db, gemini, providers, materials_text):
    note = _note(db)
    gemini.quota(2).ok(materials_text)

    result = process_note(db, providers, note_id=note.id, content=PLANT_NOTES)

    assert [c["model"] for c in gemini.calls] == ["gemini-2.5-pro", "gemini-2.5-flash", "gemini-2.5-flash-lite"]
    assert [c["key"] for c in gemini.calls] == ["key-primary"] * 3
    assert [a.ok for a in result.attempts] == [False, False, True]
    assert get_note(db, note.id).processing_status == "completed"


def test_secondary_key_chain_succeeds_on_light_model(db, gemini, make_providers, materials_text):
    providers = make_providers(gemini_api_key_secondary="key-secondary")
    note = _note(db)
    gemini.quota(3).ok(materials_text)

    result = process_note(db, providers, note_id=note.id, content=PLANT_NOTES)

    assert [(c["key"], c["model"]) for c in gemini.calls] == [
        ("key-primary", "gemini-2.5-pro"),
        ("key-secondary", "gemini-2.5-pro"),
        ("key-secondary", "gemini-2.5-flash"),
        ("key-secondary", "gemini-2.5-flash-lite"),
    ]
    assert [a.ok for a in result.attempts] == [False, False, False, True]
    db.expire_all()
    assert get_note(db, note.id).processing_status == "completed"


def test_exhausted_chain_marks_note_error(db, gemini, make_providers):
    providers = make_providers(gemini_api_key_secondary="key-secondary")
    note = _note(db)
    gemini.quota(4)

    with pytest.raises(QuotaExhaustedError) as ei:
        process_note(db, providers, note_id=note.id, content=PLANT_NOTES)

    assert ei.value.code == "GEMINI_QUOTA"
    assert [c["key"] for c in gemini.calls] == ["key-primary", "key-secondary", "key-secondary", "key-secondary"]
    db.expire_all()
    stored = get_note(db, note.id)
    assert stored.processing_status == "error"
    assert stored.error.startswith("Gemini error:")
    assert stored.summary is None


def test_bad_request_is_not_retried(db, gemini, providers):
    note = _note(db)
    gemini.error(400, "Invalid argument", "INVALID_ARGUMENT")

    with pytest.raises(ProviderError) as ei:
        process_note(db, providers, note_id=note.id, content=PLANT_NOTES)

    assert ei.value.code == "GEMINI_ERROR"
    assert ei.value.provider_status == 400
    assert len(gemini.calls) == 1
    db.expire_all()
    assert get_note(db, note.id).processing_status == "error"


def test_unparseable_output_marks_error(db, gemini, providers):
    note = _note(db)
    gemini.ok("Here are some thoughts about plants, no JSON today.")

    with pytest.raises(ParseError):
        process_note(db, providers, note_id=note.id, content=PLANT_NOTES)

    assert len(gemini.calls) == 1
    db.expire_all()
    assert get_note(db, note.id).processing_status == "error"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"note_id": None, "content": PLANT_NOTES},
        {"note_id": "n-1", "content": "   "},
        {"note_id": "n-1", "content": None, "images": []},
    ],
)
def test_invalid_input_rejected_before_any_call(db, gemini, providers, kwargs):
    with pytest.raises(InputError):
        process_note(db, providers, **kwargs)
    assert gemini.calls == []


def test_other_users_note_is_rejected_untouched(db, gemini, providers):
    note = create_note(db, user_id="owner", content=PLANT_NOTES)

    with pytest.raises(ForbiddenError):
        process_note(db, providers, note_id=note.id, content=PLANT_NOTES, user_id="intruder")

    assert gemini.calls == []
    db.expire_all()
    assert get_note(db, note.id).processing_status == "pending"


def test_unknown_note_is_not_found(db, gemini, providers):
    with pytest.raises(NotFoundError):
        process_note(db, providers, note_id="missing", content=PLANT_NOTES)
    assert gemini.calls == []


def test_image_only_note_skips_enrichment(db, gemini, make_providers, materials_text):
    search = FakeSearch()
    providers = make_providers(search=search)
    note = _note(db, content="")
    gemini.ok(materials_text)

    result = process_note(
        db,
        providers,
        note_id=note.id,
        images=[{"data": "aW1n", "mimeType": "image/png"}],
        enhance_with_internet=True,
    )

    assert result.enhanced_with_internet is False
    assert search.queries == []
    assert len(gemini.calls) == 1
    assert IMAGES_ONLY_BLOCK in gemini.prompt()
    assert gemini.calls[0]["body"]["contents"][0]["parts"][1]["inline_data"]["data"] == "aW1n"


def test_enhancement_feeds_research_into_synthesis(db, gemini, make_providers, materials_text):
    search = FakeSearch({"Photosynthesis": "Plants convert light to sugar.", "Chloroplast": RuntimeError("boom")})
    providers = make_providers(search=search)
    note = _note(db)
    gemini.ok("Photosynthesis\nChloroplast\nStomata").ok(materials_text)

    result = process_note(db, providers, note_id=note.id, content=PLANT_NOTES, enhance_with_internet=True)

    assert result.enhanced_with_internet is True
    assert len(search.queries) == 2
    prompt = gemini.prompt()
    assert '## Research on "Photosynthesis":\nPlants convert light to sugar.' in prompt
    assert "Chloroplast\":" not in prompt
    assert get_note(db, note.id).processing_status == "completed"


def test_enhancement_without_context_reports_false(db, gemini, make_providers, materials_text):
    providers = make_providers(search=FakeSearch({"Photosynthesis": None}))
    note = _note(db)
    gemini.ok("Photosynthesis").ok(materials_text)

    result = process_note(db, providers, note_id=note.id, content=PLANT_NOTES, enhance_with_internet=True)

    assert result.enhanced_with_internet is False
    assert "Additional Research Context" not in gemini.prompt()
