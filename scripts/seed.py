import argparse
import os
import sys
from datetime import date, timedelta

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from planner.core.db import Base, SessionLocal, engine
from planner.services.store import EntityStore


def run(user_id: str) -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        store = EntityStore(db)
        if store.query("projects", "by_user", user_id):
            print(f"Seed already applied for {user_id}")
            return

        today = date.today()
        with store.transaction():
            project = store.insert("projects", user_id=user_id, name="Home Renovation", description="Kitchen and garden")
            kitchen = store.insert("areas", user_id=user_id, project_id=project.id, name="Kitchen")
            garden = store.insert("areas", user_id=user_id, project_id=project.id, name="Garden")

            for area, title, status, priority, due, tags in [
                (kitchen, "Pick cabinet finish", "todo", "high", today - timedelta(days=2), ["design"]),
                (kitchen, "Book electrician", "inprog", "med", today, ["trades"]),
                (kitchen, "Order tiles", "todo", "low", today + timedelta(days=1), ["design", "orders"]),
                (garden, "Plan raised beds", "todo", None, today + timedelta(days=12), ["planning"]),
                (garden, "Clear old shed", "done", "low", None, None),
            ]:
                store.insert(
                    "tasks",
                    user_id=user_id,
                    project_id=project.id,
                    area_id=area.id,
                    title=title,
                    status=status,
                    priority=priority,
                    due_date=due,
                    tags=tags,
                    archived=False,
                )

            store.insert("notes", user_id=user_id, project_id=project.id, title="Budget", content="Cap at 18k", attachments=[])
            store.insert(
                "notes",
                user_id=user_id,
                project_id=project.id,
                area_id=kitchen.id,
                title="Layout ideas",
                content="Island vs peninsula",
                attachments=[],
            )
            store.insert(
                "resources",
                user_id=user_id,
                project_id=project.id,
                area_id=garden.id,
                title="Raised bed guide",
                url="https://example.org/raised-beds",
            )
        print(f"Seeded project {project.id} for {user_id}")
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--user-id", required=True)
    args = parser.parse_args()
    run(args.user_id)
