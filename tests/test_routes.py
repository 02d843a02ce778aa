from datetime import date, timedelta


def _create(client, path, **data):
    response = client.post(path, data=data)
    assert response.status_code == 201, response.text
    return response.json()


def test_requires_session(client):
    assert client.get("/projects").status_code == 401
    assert client.post("/projects", data={"name": "x"}).status_code == 401
    assert client.get("/session").status_code == 401


def test_session_round_trip(client):
    client.post("/session", data={"user_id": "user_b"})
    assert client.get("/session").json() == {"user_id": "user_b"}
    client.post("/logout")
    assert client.get("/session").status_code == 401


def test_blank_names_are_rejected(owner):
    response = owner.post("/projects", data={"name": "   "})
    assert response.status_code == 400
    assert response.json()["detail"] == "Name required"
    assert owner.get("/projects").json() == []


def test_project_and_area_crud(owner):
    project = _create(owner, "/projects", name=" Renovation ", description="")
    assert project["name"] == "Renovation"
    assert project["description"] is None
    assert project["user_id"] == "user_a"

    area = _create(owner, "/areas", project_id=project["id"], name="Kitchen")
    _create(owner, "/areas", project_id=project["id"], name="Bath")
    names = [a["name"] for a in owner.get(f"/projects/{project['id']}/areas").json()]
    assert names == ["Kitchen", "Bath"]

    updated = owner.post(f"/areas/{area['id']}/update", data={"name": "Galley kitchen"}).json()
    assert updated["name"] == "Galley kitchen"
    assert updated["created_at"] == area["created_at"]

    assert owner.post("/areas", data={"project_id": 999, "name": "Orphan"}).status_code == 404
    assert owner.get("/projects/999").status_code == 404


def test_listings_are_scoped_to_the_owner(owner, hierarchy):
    names = [p["name"] for p in owner.get("/projects").json()]
    assert names == ["Garden", "Renovation"]

    owner.post("/session", data={"user_id": "user_b"})
    assert owner.get("/projects").json() == []
    assert owner.get("/tasks").json()["tasks"] == []


def test_task_takes_project_from_its_area(owner, hierarchy):
    task = _create(
        owner,
        "/tasks",
        area_id=hierarchy["b1"],
        title="Plant bulbs",
        priority="high",
        due_date="2030-03-01",
        tags="garden, spring,",
    )
    assert task["project_id"] == hierarchy["p2"]
    assert task["status"] == "todo"
    assert task["tags"] == ["garden", "spring"]
    assert task["archived"] is False

    bad = owner.post("/tasks", data={"area_id": hierarchy["b1"], "title": "x", "priority": "urgent"})
    assert bad.status_code == 400
    assert owner.post("/tasks", data={"area_id": hierarchy["b1"], "title": " "}).status_code == 400


def test_task_patch_cycle_and_archive(owner, hierarchy):
    task = _create(owner, "/tasks", area_id=hierarchy["a1"], title="Tile")

    patched = owner.patch(f"/tasks/{task['id']}", json={"priority": "med", "tags": ["wet", " "]}).json()
    assert patched["priority"] == "med"
    assert patched["tags"] == ["wet"]
    assert patched["title"] == "Tile"

    cleared = owner.patch(f"/tasks/{task['id']}", json={"priority": None}).json()
    assert cleared["priority"] is None
    assert owner.patch(f"/tasks/{task['id']}", json={"status": None}).status_code == 400
    assert owner.patch(f"/tasks/{task['id']}", json={"status": "blocked"}).status_code == 422

    statuses = [owner.post(f"/tasks/{task['id']}/cycle").json()["status"] for _ in range(3)]
    assert statuses == ["inprog", "done", "todo"]

    assert owner.post(f"/tasks/{task['id']}/archive").json()["archived"] is True
    assert owner.post(f"/tasks/{task['id']}/archive").json()["archived"] is False
    assert owner.patch("/tasks/999", json={"title": "x"}).status_code == 404


def test_task_listing_filters_and_groups(owner, hierarchy):
    today = date.today()
    overdue = _create(
        owner, "/tasks", area_id=hierarchy["a2"], title="Grout", priority="high",
        due_date=(today - timedelta(days=2)).isoformat(), tags="wet",
    )
    due_today = _create(
        owner, "/tasks", area_id=hierarchy["b1"], title="Water", priority="low",
        due_date=today.isoformat(), tags="daily",
    )
    owner.post(f"/tasks/{due_today['id']}/archive")

    listing = owner.get("/tasks").json()
    assert listing["counts"] == {"active": 5, "archived": 1, "shown": 5}
    assert listing["tasks"][0]["id"] == overdue["id"]
    assert listing["tasks"][0]["due"] == {"kind": "overdue", "label": "2d overdue"}
    assert listing["tasks"][0]["project_name"] == "Renovation"
    assert listing["tags"] == ["daily", "wet"]

    archived = owner.get("/tasks", params={"archived": "true"}).json()
    assert [t["id"] for t in archived["tasks"]] == [due_today["id"]]
    assert archived["tasks"][0]["due"]["label"] == "Today"

    filtered = owner.get("/tasks", params={"priority": "high", "tag": "wet", "due": "overdue"}).json()
    assert [t["id"] for t in filtered["tasks"]] == [overdue["id"]]
    by_project = owner.get("/tasks", params={"project_id": str(hierarchy["p2"])}).json()
    assert len(by_project["tasks"]) == 1

    grouped = owner.get("/tasks", params={"group_by": "priority"}).json()
    assert [g["key"] for g in grouped["groups"]] == ["high", "none"]
    assert owner.get("/tasks", params={"group_by": "colour"}).status_code == 400

    area_listing = owner.get(f"/areas/{hierarchy['a1']}/tasks").json()
    assert [t["title"] for t in area_listing["tasks"]] == ["Task in Kitchen", "Task in Kitchen"]


def test_notes_and_resources_placement(owner, hierarchy):
    pinned = _create(owner, "/notes", project_id=hierarchy["p2"], area_id=hierarchy["a1"], title="Moved")
    assert pinned["project_id"] == hierarchy["p1"]
    assert pinned["attachments"] == []

    direct = owner.get(f"/projects/{hierarchy['p1']}/notes", params={"direct_only": "true"}).json()
    assert [n["title"] for n in direct] == ["Project note"]
    everything = owner.get(f"/projects/{hierarchy['p1']}/notes").json()
    assert [n["title"] for n in everything] == ["Moved", "Project note", "Kitchen note"]

    resource = _create(owner, "/resources", project_id=hierarchy["p2"], title="Seeds", url="https://example.com")
    assert resource["area_id"] is None
    updated = owner.post(f"/resources/{resource['id']}/update", data={"title": "Bulbs"}).json()
    assert updated["title"] == "Bulbs"
    assert updated["url"] is None

    area_resources = owner.get(f"/areas/{hierarchy['a2']}/resources").json()
    assert [r["title"] for r in area_resources] == ["Bath catalogue"]
    assert owner.post("/notes", data={"project_id": 999, "title": "x"}).status_code == 404


def test_delete_endpoints_report_cascade(owner, hierarchy):
    response = owner.post(f"/areas/{hierarchy['a1']}/delete").json()
    assert response["deleted"] == {"areas": 1, "tasks": 2, "notes": 1, "resources": 0, "blobs": 0}

    response = owner.post(f"/projects/{hierarchy['p1']}/delete").json()
    assert response["deleted"] == {"areas": 1, "tasks": 1, "notes": 1, "resources": 2, "blobs": 0}
    assert owner.get(f"/projects/{hierarchy['p1']}").status_code == 404
    assert [p["name"] for p in owner.get("/projects").json()] == ["Garden"]

    resource_id = owner.get(f"/projects/{hierarchy['p2']}/resources").json()[0]["id"]
    assert owner.post(f"/resources/{resource_id}/delete").json() == {"deleted": resource_id}
    assert owner.post(f"/resources/{resource_id}/delete").status_code == 404


def test_note_files_and_downloads(owner, hierarchy, storage):
    note_id = owner.get(f"/areas/{hierarchy['a1']}/notes").json()[0]["id"]
    response = owner.post(
        f"/notes/{note_id}/files",
        files=[
            ("files", ("plan.txt", b"measure twice", "text/plain")),
            ("files", ("photo.png", b"\x89PNG", "image/png")),
        ],
    )
    body = response.json()
    assert response.status_code == 200
    assert body["failed"] == []
    assert [a["name"] for a in body["note"]["attachments"]] == ["plan.txt", "photo.png"]

    first = body["attached"][0]
    url = owner.get(f"/storage/{first}/url").json()["url"]
    download = owner.get(url)
    assert download.status_code == 200
    assert download.content == b"measure twice"
    assert download.headers["content-type"].startswith("text/plain")
    assert owner.get(f"/storage/{first}", params={"sig": "nope"}).status_code == 404

    removed = owner.post(f"/notes/{note_id}/attachments/remove", data={"storage_id": first}).json()
    assert removed["removed"] is True
    assert [a["name"] for a in removed["note"]["attachments"]] == ["photo.png"]
    assert owner.get(f"/storage/{first}/url").json() == {"url": None}

    deleted = owner.post(f"/notes/{note_id}/delete").json()["deleted"]
    assert deleted == {"areas": 0, "tasks": 0, "notes": 1, "resources": 0, "blobs": 1}
    assert not storage.exists(body["attached"][1])


def test_upload_url_handshake(owner, hierarchy):
    url = owner.post("/storage/upload-url").json()["url"]
    pushed = owner.post(url, content=b"abc", headers={"Content-Type": "text/csv"})
    storage_id = pushed.json()["storage_id"]
    assert owner.post(url, content=b"abc").status_code == 400
    assert owner.post("/storage/upload", params={"token": "forged"}, content=b"x").status_code == 400

    note_id = owner.get(f"/projects/{hierarchy['p1']}/notes", params={"direct_only": "true"}).json()[0]["id"]
    note = owner.post(
        f"/notes/{note_id}/attachments",
        data={"storage_id": storage_id, "name": "sheet.csv", "type": "text/csv", "size": "3"},
    ).json()
    assert note["attachments"][0]["size"] == 3
    assert note["attachments"][0]["type"] == "text/csv"


def test_register_rejects_ids_without_a_blob(owner, hierarchy, storage):
    note_id = owner.get(f"/areas/{hierarchy['b1']}/notes").json()[0]["id"]
    for storage_id in ("not-a-blob", "0" * 32):
        response = owner.post(
            f"/notes/{note_id}/attachments",
            data={"storage_id": storage_id, "name": "ghost.txt", "type": "text/plain", "size": "1"},
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Blob not found"
    assert owner.get(f"/notes/{note_id}").json()["attachments"] == []


def test_remove_clears_entry_with_malformed_id(owner, store, hierarchy):
    note_id = owner.get(f"/areas/{hierarchy['b1']}/notes").json()[0]["id"]
    legacy = {"storage_id": "not-a-blob", "name": "old.txt", "type": "text/plain", "size": 1, "uploaded_at": 1}
    store.patch("notes", note_id, attachments=[legacy])
    store.commit()

    response = owner.post(f"/notes/{note_id}/attachments/remove", data={"storage_id": "not-a-blob"})
    assert response.status_code == 200
    assert response.json() == {"removed": True, "note": owner.get(f"/notes/{note_id}").json()}
    assert response.json()["note"]["attachments"] == []


def test_large_upload_is_stored_intact(owner, storage):
    payload = bytes(range(256)) * 8192
    url = owner.post("/storage/upload-url").json()["url"]
    storage_id = owner.post(url, content=payload, headers={"Content-Type": "application/zip"}).json()["storage_id"]

    download = owner.get(owner.get(f"/storage/{storage_id}/url").json()["url"])
    assert download.content == payload
    assert download.headers["content-type"] == "application/zip"
