import os
import sys

from fastapi.testclient import TestClient

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from planner.core.db import Base, engine
from planner.main import app
from planner.services.uploader import UploadItem, upload_note_files


def main() -> None:
    Base.metadata.create_all(bind=engine)
    client = TestClient(app)

    print("Session:", client.post("/session", data={"user_id": "demo-user"}).status_code)

    project = client.post("/projects", data={"name": "Demo Project"}).json()
    area = client.post("/areas", data={"project_id": project["id"], "name": "Demo Area"}).json()
    task = client.post("/tasks", data={"area_id": area["id"], "title": "Demo Task", "tags": "demo"}).json()
    print("Created task:", task["id"])

    note = client.post("/notes", data={"project_id": project["id"], "area_id": area["id"], "title": "Demo Note"}).json()
    attached = upload_note_files(
        client,
        note["id"],
        [UploadItem(name="hello.txt", content=b"hello", content_type="text/plain")],
        on_status=lambda s: s and print(s),
    )
    print("Attached:", attached)

    listing = client.get("/tasks").json()
    print("Tasks shown:", listing["counts"]["shown"], "tags:", listing["tags"])

    deleted = client.post(f"/projects/{project['id']}/delete").json()
    print("Cascade:", deleted["deleted"])


if __name__ == "__main__":
    main()
