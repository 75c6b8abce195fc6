from datetime import datetime, timezone

import pytest


def parse_ts(value: str) -> datetime:
    # Pydantic renders UTC as a trailing 'Z'
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def create_task(client, title="Test Task"):
    res = client.post("/tasks", json={"title": title})
    assert res.status_code == 201
    return res.json()


def assert_task_shape(task: dict):
    assert set(task) == {"id", "title", "completed", "created_at"}
    assert isinstance(task["id"], str)
    assert isinstance(task["title"], str)
    assert isinstance(task["completed"], bool)
    assert parse_ts(task["created_at"]).tzinfo is not None


def assert_error_shape(body: dict, message: str):
    assert body["error"] == message
    parse_ts(body["timestamp"])


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/health")
        assert res.status_code == 200
        assert res.text == "OK"


class TestTasksCRUD:
    def test_create_task(self, client):
        before = datetime.now(timezone.utc)
        res = client.post("/tasks", json={"title": "Buy milk"})
        assert res.status_code == 201
        task = res.json()
        assert_task_shape(task)
        assert task["title"] == "Buy milk"
        assert task["completed"] is False
        assert parse_ts(task["created_at"]) >= before

    def test_created_ids_are_unique(self, client):
        ids = {create_task(client, f"Task {i}")["id"] for i in range(20)}
        assert len(ids) == 20

    @pytest.mark.parametrize("title", ["", "   ", "\t\n"])
    def test_create_blank_title_rejected(self, client, title):
        res = client.post("/tasks", json={"title": title})
        assert res.status_code == 400
        assert_error_shape(res.json(), "Title cannot be empty")
        # Nothing was persisted
        assert client.get("/tasks").json() == []

    def test_create_missing_title_is_validation_error(self, client):
        res = client.post("/tasks", json={})
        assert res.status_code == 422
        body = res.json()
        assert_error_shape(body, "Request validation failed")
        assert isinstance(body["detail"], list)

    def test_create_malformed_json_is_validation_error(self, client):
        res = client.post("/tasks", content=b"{not json", headers={"Content-Type": "application/json"})
        assert res.status_code == 422
        assert_error_shape(res.json(), "Request validation failed")

    def test_get_round_trip(self, client):
        created = create_task(client, "Read book")
        res = client.get(f"/tasks/{created['id']}")
        assert res.status_code == 200
        assert res.json() == created

    def test_get_not_found(self, client):
        res = client.get("/tasks/does-not-exist")
        assert res.status_code == 404
        assert_error_shape(res.json(), "Task not found")

    def test_patch_completed_only(self, client):
        created = create_task(client, "Partial")
        res = client.patch(f"/tasks/{created['id']}", json={"completed": True})
        assert res.status_code == 200
        patched = res.json()
        assert patched["completed"] is True
        assert patched["title"] == created["title"]
        assert patched["created_at"] == created["created_at"]
        assert client.get(f"/tasks/{created['id']}").json() == patched

    def test_patch_title_and_completed(self, client):
        created = create_task(client, "Old title")
        res = client.patch(f"/tasks/{created['id']}", json={"title": "New title", "completed": True})
        assert res.status_code == 200
        patched = res.json()
        assert patched["title"] == "New title"
        assert patched["completed"] is True
        assert patched["id"] == created["id"]

    def test_patch_can_reopen_task(self, client):
        created = create_task(client, "Reopen")
        client.patch(f"/tasks/{created['id']}", json={"completed": True})
        res = client.patch(f"/tasks/{created['id']}", json={"completed": False})
        assert res.status_code == 200
        assert res.json()["completed"] is False

    def test_patch_empty_body_leaves_task_unchanged(self, client):
        created = create_task(client, "Untouched")
        res = client.patch(f"/tasks/{created['id']}", json={})
        assert res.status_code == 200
        assert res.json() == created

    @pytest.mark.parametrize("title", ["", "  "])
    def test_patch_blank_title_rejected(self, client, title):
        created = create_task(client, "Keep me")
        res = client.patch(f"/tasks/{created['id']}", json={"title": title, "completed": True})
        assert res.status_code == 400
        assert_error_shape(res.json(), "Title cannot be empty")
        assert client.get(f"/tasks/{created['id']}").json() == created

    def test_patch_not_found_leaves_store_unchanged(self, client):
        create_task(client, "Existing")
        before = client.get("/tasks").json()
        res = client.patch("/tasks/123456", json={"title": "Nope"})
        assert res.status_code == 404
        assert_error_shape(res.json(), "Task not found")
        assert client.get("/tasks").json() == before

    def test_patch_unknown_id_with_blank_title_is_not_found(self, client):
        res = client.patch("/tasks/nope", json={"title": "  "})
        assert res.status_code == 404
        assert_error_shape(res.json(), "Task not found")

    def test_delete_twice(self, client):
        created = create_task(client, "ToDelete")

        res_del = client.delete(f"/tasks/{created['id']}")
        assert res_del.status_code == 204
        assert res_del.text == ""

        assert client.get(f"/tasks/{created['id']}").status_code == 404

        res_again = client.delete(f"/tasks/{created['id']}")
        assert res_again.status_code == 404
        assert_error_shape(res_again.json(), "Task not found")


class TestListFilteringPagination:
    def seed_tasks(self, client, count=5):
        """Create `count` tasks; even-numbered ones are marked completed."""
        created = []
        for i in range(count):
            task = create_task(client, f"Task {i}")
            if i % 2 == 0:
                task = client.patch(f"/tasks/{task['id']}", json={"completed": True}).json()
            created.append(task)
        return created

    def test_list_empty(self, client):
        res = client.get("/tasks")
        assert res.status_code == 200
        assert res.json() == []

    def test_list_all_newest_first(self, client):
        created = self.seed_tasks(client, 5)
        items = client.get("/tasks").json()
        assert {t["id"] for t in items} == {t["id"] for t in created}
        created_ts = [parse_ts(t["created_at"]) for t in items]
        assert created_ts == sorted(created_ts, reverse=True)

    def test_filter_completed_true_false(self, client):
        created = self.seed_tasks(client, 6)
        done = {t["id"] for t in created if t["completed"]}
        open_ = {t["id"] for t in created if not t["completed"]}

        res_true = client.get("/tasks?completed=true")
        assert res_true.status_code == 200
        assert {t["id"] for t in res_true.json()} == done

        res_false = client.get("/tasks?completed=false")
        assert res_false.status_code == 200
        assert {t["id"] for t in res_false.json()} == open_

    def test_limit_and_offset_window_the_ordered_list(self, client):
        self.seed_tasks(client, 5)
        full = client.get("/tasks").json()

        page = client.get("/tasks?limit=2&offset=1").json()
        assert [t["id"] for t in page] == [t["id"] for t in full[1:3]]

        assert client.get("/tasks?offset=2").json() == full[2:]
        assert client.get("/tasks?limit=3").json() == full[:3]
        assert client.get("/tasks?limit=0").json() == []
        assert client.get("/tasks?offset=50").json() == []

    def test_filter_combined_with_pagination(self, client):
        self.seed_tasks(client, 6)
        done = client.get("/tasks?completed=true").json()
        page = client.get("/tasks?completed=true&limit=1&offset=1").json()
        assert page == done[1:2]

    @pytest.mark.parametrize("param", ["limit", "offset"])
    def test_pagination_values_beyond_integer_range(self, client, param):
        self.seed_tasks(client, 3)
        full = client.get("/tasks").json()
        res = client.get(f"/tasks?{param}=100000000000000000000")
        assert res.status_code == 200
        assert res.json() == (full if param == "limit" else [])

    @pytest.mark.parametrize("query", ["limit=-1", "offset=-3", "limit=abc", "completed=maybe"])
    def test_invalid_query_params(self, client, query):
        res = client.get(f"/tasks?{query}")
        assert res.status_code == 422
        assert_error_shape(res.json(), "Request validation failed")
