"""
Integration tests for problems and problem tags.
"""

import pytest

API = "/api/v1"


def problem_payload(**overrides):
    payload = {
        "title": "Two Sum",
        "description": "Find two numbers that add up to a target.",
        "difficulty": "Easy",
        "tags": ["array", "hash-table"],
        "constraints": "2 <= n <= 10^4",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_problem(client):
    def _create(user, **overrides):
        response = client.post(f"{API}/problems", headers=user["headers"], json=problem_payload(**overrides))
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


class TestProblemLifecycle:
    """Test create, approve and list."""

    def test_created_problem_is_unapproved(self, client, register, create_problem):
        user = register("alice")

        problem = create_problem(user)

        assert problem["approved"] is False
        assert problem["creator_id"] == user["id"]
        assert problem["tags"] == ["array", "hash-table"]

    def test_client_cannot_self_approve(self, client, register):
        user = register("alice")

        response = client.post(
            f"{API}/problems",
            headers=user["headers"],
            json=problem_payload(approved=True, creator_id=999),
        )

        assert response.status_code == 201
        assert response.json()["data"]["approved"] is False
        assert response.json()["data"]["creator_id"] == user["id"]

    def test_listing_hides_unapproved(self, client, register, admin, create_problem):
        user = register("alice")
        problem = create_problem(user)

        listing = client.get(f"{API}/problems", headers=user["headers"])
        assert listing.json()["data"] == []

        admin_listing = client.get(f"{API}/problems", headers=admin["headers"])
        assert [p["id"] for p in admin_listing.json()["data"]] == [problem["id"]]

        approved = client.put(f"{API}/problems/{problem['id']}/approve", headers=admin["headers"])
        assert approved.status_code == 200
        assert approved.json()["data"]["approved"] is True

        listing = client.get(f"{API}/problems", headers=user["headers"])
        assert [p["id"] for p in listing.json()["data"]] == [problem["id"]]

    def test_only_admin_approves(self, client, register, create_problem):
        user = register("alice")
        problem = create_problem(user)

        response = client.put(f"{API}/problems/{problem['id']}/approve", headers=user["headers"])

        assert response.status_code == 403

    def test_list_filters(self, client, admin, create_problem):
        create_problem(admin, title="Two Sum", difficulty="Easy", tags=["array"])
        create_problem(admin, title="Edit Distance", difficulty="Hard", tags=["dp"])

        hard = client.get(f"{API}/problems", params={"difficulty": "Hard"}, headers=admin["headers"])
        assert [p["title"] for p in hard.json()["data"]] == ["Edit Distance"]

        tagged = client.get(f"{API}/problems", params={"tag": "array"}, headers=admin["headers"])
        assert [p["title"] for p in tagged.json()["data"]] == ["Two Sum"]

        searched = client.get(f"{API}/problems", params={"search": "edit"}, headers=admin["headers"])
        assert [p["title"] for p in searched.json()["data"]] == ["Edit Distance"]

    def test_admin_all_listing(self, client, register, admin, create_problem):
        user = register("alice")
        create_problem(user)

        assert client.get(f"{API}/problems/admin/all", headers=user["headers"]).status_code == 403

        response = client.get(f"{API}/problems/admin/all", params={"approved": False}, headers=admin["headers"])
        assert response.json()["count"] == 1

    def test_get_missing_problem(self, client, register):
        user = register("alice")

        response = client.get(f"{API}/problems/9999", headers=user["headers"])

        assert response.status_code == 404


class TestProblemOwnership:
    """Test that only creators and admins modify problems."""

    def test_non_creator_cannot_update(self, client, register, create_problem):
        alice = register("alice")
        bob = register("bob")
        problem = create_problem(alice)

        response = client.put(f"{API}/problems/{problem['id']}", headers=bob["headers"], json={"title": "Hijacked"})

        assert response.status_code == 403
        unchanged = client.get(f"{API}/problems/{problem['id']}", headers=alice["headers"])
        assert unchanged.json()["data"]["title"] == "Two Sum"

    def test_creator_updates(self, client, register, create_problem):
        alice = register("alice")
        problem = create_problem(alice)

        response = client.put(
            f"{API}/problems/{problem['id']}",
            headers=alice["headers"],
            json={"title": "Three Sum", "difficulty": "Medium"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Three Sum"
        assert response.json()["data"]["difficulty"] == "Medium"

    @pytest.mark.parametrize("field", ["title", "description", "difficulty", "tags"])
    def test_required_fields_cannot_be_nulled(self, client, register, create_problem, field):
        alice = register("alice")
        problem = create_problem(alice)

        response = client.put(f"{API}/problems/{problem['id']}", headers=alice["headers"], json={field: None})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_update_cannot_approve(self, client, register, create_problem):
        alice = register("alice")
        problem = create_problem(alice)

        response = client.put(
            f"{API}/problems/{problem['id']}",
            headers=alice["headers"],
            json={"title": "Three Sum", "approved": True},
        )

        assert response.json()["data"]["approved"] is False

    def test_admin_updates_any(self, client, register, admin, create_problem):
        problem = create_problem(register("alice"))

        response = client.put(f"{API}/problems/{problem['id']}", headers=admin["headers"], json={"title": "Fixed"})

        assert response.status_code == 200

    def test_delete(self, client, register, admin, create_problem):
        alice = register("alice")
        bob = register("bob")
        problem = create_problem(alice)

        assert client.delete(f"{API}/problems/{problem['id']}", headers=bob["headers"]).status_code == 403
        assert client.delete(f"{API}/problems/{problem['id']}", headers=alice["headers"]).status_code == 200
        assert client.get(f"{API}/problems/{problem['id']}", headers=admin["headers"]).status_code == 404

    def test_bulk_delete(self, client, register, admin, create_problem):
        first = create_problem(admin)
        second = create_problem(admin)
        user = register("alice")

        denied = client.post(f"{API}/problems/bulk-delete", headers=user["headers"], json={"ids": [first["id"]]})
        assert denied.status_code == 403

        response = client.post(
            f"{API}/problems/bulk-delete",
            headers=admin["headers"],
            json={"ids": [first["id"], second["id"], 9999]},
        )
        assert response.status_code == 200
        assert response.json()["data"]["deleted_count"] == 2

    def test_bulk_delete_requires_ids(self, client, admin):
        response = client.post(f"{API}/problems/bulk-delete", headers=admin["headers"], json={"ids": []})

        assert response.status_code == 400


class TestProblemTags:
    """Test tag assignments."""

    def test_duplicate_tag_rejected(self, client, admin, create_problem):
        problem = create_problem(admin)

        first = client.post(f"{API}/problem-tags", headers=admin["headers"], json={"problem_id": problem["id"], "tag": "dp"})
        assert first.status_code == 201

        second = client.post(f"{API}/problem-tags", headers=admin["headers"], json={"problem_id": problem["id"], "tag": "dp"})
        assert second.status_code == 400
        assert second.json()["message"] == "This tag already exists for the problem"

    def test_same_tag_on_other_problem(self, client, admin, create_problem):
        first = create_problem(admin)
        second = create_problem(admin)

        for problem in (first, second):
            response = client.post(
                f"{API}/problem-tags", headers=admin["headers"], json={"problem_id": problem["id"], "tag": "dp"}
            )
            assert response.status_code == 201

    def test_tag_for_missing_problem(self, client, admin):
        response = client.post(f"{API}/problem-tags", headers=admin["headers"], json={"problem_id": 9999, "tag": "dp"})

        assert response.status_code == 404

    def test_non_admin_cannot_tag(self, client, register, admin, create_problem):
        problem = create_problem(admin)
        user = register("alice")

        response = client.post(f"{API}/problem-tags", headers=user["headers"], json={"problem_id": problem["id"], "tag": "dp"})

        assert response.status_code == 403

    def test_lookups(self, client, register, admin, create_problem):
        approved = create_problem(admin, title="Approved")
        hidden = create_problem(admin, title="Hidden")
        client.put(f"{API}/problems/{approved['id']}/approve", headers=admin["headers"])
        for problem in (approved, hidden):
            client.post(f"{API}/problem-tags", headers=admin["headers"], json={"problem_id": problem["id"], "tag": "graph"})
        user = register("alice")

        tags = client.get(f"{API}/problem-tags/problem/{approved['id']}", headers=user["headers"])
        assert [t["tag"] for t in tags.json()["data"]] == ["graph"]

        user_view = client.get(f"{API}/problem-tags/tag/graph", headers=user["headers"])
        assert [p["title"] for p in user_view.json()["data"]] == ["Approved"]

        admin_view = client.get(f"{API}/problem-tags/tag/graph", headers=admin["headers"])
        assert admin_view.json()["count"] == 2

    def test_delete_tags(self, client, admin, create_problem):
        problem = create_problem(admin)
        created = [
            client.post(f"{API}/problem-tags", headers=admin["headers"], json={"problem_id": problem["id"], "tag": tag}).json()["data"]
            for tag in ("dp", "greedy", "math")
        ]

        assert client.delete(f"{API}/problem-tags/{created[0]['id']}", headers=admin["headers"]).status_code == 200

        response = client.delete(f"{API}/problem-tags/problem/{problem['id']}", headers=admin["headers"])
        assert response.json()["data"]["deleted_count"] == 2

        listing = client.get(f"{API}/problem-tags", headers=admin["headers"])
        assert listing.json()["count"] == 0

    def test_tags_removed_with_problem(self, client, admin, create_problem):
        problem = create_problem(admin)
        client.post(f"{API}/problem-tags", headers=admin["headers"], json={"problem_id": problem["id"], "tag": "dp"})

        client.delete(f"{API}/problems/{problem['id']}", headers=admin["headers"])

        assert client.get(f"{API}/problem-tags", headers=admin["headers"]).json()["count"] == 0
