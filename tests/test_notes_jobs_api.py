PLANT_NOTES = "Photosynthesis converts light energy into chemical energy in chloroplasts."


def test_create_and_list_notes(client):
    r = client.post("/notes", json={"content": PLANT_NOTES, "title": "Biology"})
    assert r.status_code == 200
    note = r.json()["note"]
    assert note["processing_status"] == "pending"
    assert note["user_id"] == "user-1"
    assert note["summary"] is None

    listing = client.get("/notes").json()
    assert listing["count"] == 1
    assert listing["items"][0]["id"] == note["id"]


def test_other_users_note_is_forbidden(client, db):
    from studyaid.services.notes import create_note

    note = create_note(db, user_id="user-2", content=PLANT_NOTES)
    r = client.get(f"/notes/{note.id}")
    assert r.status_code == 403
    assert r.json()["code"] == "FORBIDDEN"


def test_background_processing_completes_job(client, gemini, materials_text):
    note = client.post("/notes", json={"content": PLANT_NOTES}).json()["note"]
    gemini.ok(materials_text)

    r = client.post(f"/notes/{note['id']}/process", json={})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert isinstance(body["task_id"], str)

    job = client.get(f"/jobs/{body['job_id']}").json()
    assert job["status"] == "done"
    assert job["job_type"] == "process_note"
    assert job["error"] is None
    assert job["payload"]["attempts"][-1]["ok"] is True

    stored = client.get(f"/notes/{note['id']}").json()["note"]
    assert stored["processing_status"] == "completed"
    assert stored["generated_qa"][0]["question"] == "Which gas is released?"


def test_background_processing_failure_marks_job_and_note(client, gemini):
    note = client.post("/notes", json={"content": PLANT_NOTES}).json()["note"]
    gemini.error(400, "Invalid argument")

    body = client.post(f"/notes/{note['id']}/process", json={}).json()

    job = client.get(f"/jobs/{body['job_id']}").json()
    assert job["status"] == "failed"
    assert job["error"] == "Invalid argument"
    assert job["payload"]["code"] == "GEMINI_ERROR"

    stored = client.get(f"/notes/{note['id']}").json()["note"]
    assert stored["processing_status"] == "error"
    assert stored["error"] == "Invalid argument"


def test_processing_empty_note_is_rejected(client, gemini):
    note = client.post("/notes", json={}).json()["note"]
    r = client.post(f"/notes/{note['id']}/process", json={})
    assert r.status_code == 400
    assert gemini.calls == []


def test_unknown_job_is_not_found(client):
    r = client.get("/jobs/12345")
    assert r.status_code == 404
