import pytest

from planner.core.errors import NotFoundError
from planner.services.store import UnknownIndexError, coerce_index_value


def test_insert_stamps_created_at_and_defaults(store):
    project = store.insert("projects", user_id="user_a", name="Move")
    area = store.insert("areas", user_id="user_a", project_id=project.id, name="Boxes")
    task = store.insert("tasks", user_id="user_a", project_id=project.id, area_id=area.id, title="Label boxes")
    store.commit()

    assert project.id is not None
    assert project.created_at > 0
    assert task.status == "todo"
    assert task.archived is False


def test_patch_changes_only_given_fields(store, hierarchy):
    store.patch("projects", hierarchy["p1"], description="Whole house")
    store.commit()

    project = store.get("projects", hierarchy["p1"])
    assert project.name == "Renovation"
    assert project.description == "Whole house"


@pytest.mark.parametrize("field", ["id", "user_id", "created_at", "not_a_column"])
def test_patch_rejects_protected_and_unknown_fields(store, hierarchy, field):
    with pytest.raises(ValueError):
        store.patch("projects", hierarchy["p1"], **{field: 1})


def test_missing_records(store):
    assert store.get("areas", 999) is None
    with pytest.raises(NotFoundError):
        store.patch("areas", 999, name="x")
    with pytest.raises(NotFoundError):
        store.delete("areas", 999)


def test_query_orders_by_creation_time(store, hierarchy):
    asc = [a.name for a in store.query("areas", "by_project", hierarchy["p1"])]
    desc = [a.name for a in store.query("areas", "by_project", str(hierarchy["p1"]), order="desc")]

    assert asc == ["Kitchen", "Bath"]
    assert desc == ["Bath", "Kitchen"]


def test_query_ties_on_created_at_fall_back_to_insert_order(store, hierarchy):
    for title in ("first", "second", "third"):
        store.insert("resources", user_id="user_b", project_id=hierarchy["p2"], title=title, created_at=1)
    store.commit()

    rows = store.query("resources", "by_user", "user_b")
    assert [r.title for r in rows] == ["first", "second", "third"]


def test_unknown_indexes(store):
    with pytest.raises(UnknownIndexError):
        store.query("projects", "by_area", 1)
    with pytest.raises(UnknownIndexError):
        store.query("widgets", "by_user", "user_a")
    with pytest.raises(UnknownIndexError):
        coerce_index_value("widgets", "by_user", "user_a")
    with pytest.raises(ValueError):
        coerce_index_value("tasks", "by_area", "kitchen")


def test_transaction_rolls_back_on_error(store, hierarchy):
    with pytest.raises(RuntimeError):
        with store.transaction():
            store.insert("projects", user_id="user_a", name="Doomed")
            raise RuntimeError("boom")

    names = [p.name for p in store.query("projects", "by_user", "user_a")]
    assert names == ["Renovation", "Garden"]
