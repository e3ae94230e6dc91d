"""
Integration tests for code submissions.
"""

import pytest

API = "/api/v1"


@pytest.fixture
def problem(client, admin):
    response = client.post(
        f"{API}/problems",
        headers=admin["headers"],
        json={"title": "Two Sum", "description": "Find two numbers.", "difficulty": "Easy"},
    )
    return response.json()["data"]


@pytest.fixture
def submit(client, problem):
    def _submit(user, code="def solve(): pass", language="python"):
        response = client.post(
            f"{API}/submissions",
            headers=user["headers"],
            json={"problem_id": problem["id"], "code": code, "language": language},
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _submit


class TestSubmissions:
    """Test submitting and reading code."""

    def test_submission_starts_pending(self, client, register, problem, submit):
        user = register("alice")

        submission = submit(user)

        assert submission["status"] == "Pending"
        assert submission["user_id"] == user["id"]
        assert submission["problem_id"] == problem["id"]

    def test_submission_for_missing_problem(self, client, register):
        user = register("alice")

        response = client.post(
            f"{API}/submissions",
            headers=user["headers"],
            json={"problem_id": 9999, "code": "x", "language": "python"},
        )

        assert response.status_code == 404

    def test_author_reads_own_submission(self, client, register, admin, submit):
        alice = register("alice")
        bob = register("bob")
        submission = submit(alice)

        assert client.get(f"{API}/submissions/{submission['id']}", headers=alice["headers"]).status_code == 200
        assert client.get(f"{API}/submissions/{submission['id']}", headers=admin["headers"]).status_code == 200
        assert client.get(f"{API}/submissions/{submission['id']}", headers=bob["headers"]).status_code == 403

    def test_by_user(self, client, register, admin, submit):
        alice = register("alice")
        bob = register("bob")
        submit(alice)
        submit(alice, language="go")
        submit(bob)

        own = client.get(f"{API}/submissions/user/{alice['id']}", headers=alice["headers"])
        assert own.json()["count"] == 2

        assert client.get(f"{API}/submissions/user/{alice['id']}", headers=bob["headers"]).status_code == 403
        assert client.get(f"{API}/submissions/user/{bob['id']}", headers=admin["headers"]).json()["count"] == 1

    def test_admin_listings(self, client, register, admin, problem, submit):
        alice = register("alice")
        submit(alice)
        submit(alice)

        assert client.get(f"{API}/submissions", headers=alice["headers"]).status_code == 403
        assert client.get(f"{API}/submissions", headers=admin["headers"]).json()["count"] == 2

        by_problem = client.get(f"{API}/submissions/problem/{problem['id']}", headers=admin["headers"])
        assert by_problem.json()["count"] == 2
        assert client.get(f"{API}/submissions/problem/{problem['id']}", headers=alice["headers"]).status_code == 403


class TestJudging:
    """Test admin-only status updates and deletion."""

    def test_status_update(self, client, register, admin, submit):
        alice = register("alice")
        submission = submit(alice)

        denied = client.patch(
            f"{API}/submissions/{submission['id']}/status",
            headers=alice["headers"],
            json={"status": "Accepted"},
        )
        assert denied.status_code == 403

        response = client.patch(
            f"{API}/submissions/{submission['id']}/status",
            headers=admin["headers"],
            json={"status": "Accepted", "result": "All tests passed", "execution_time": 0.042},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "Accepted"
        assert data["result"] == "All tests passed"
        assert data["execution_time"] == pytest.approx(0.042)

    def test_invalid_status(self, client, register, admin, submit):
        submission = submit(register("alice"))

        response = client.patch(
            f"{API}/submissions/{submission['id']}/status",
            headers=admin["headers"],
            json={"status": "Maybe"},
        )

        assert response.status_code == 400

    def test_delete(self, client, register, admin, submit):
        alice = register("alice")
        submission = submit(alice)

        assert client.delete(f"{API}/submissions/{submission['id']}", headers=alice["headers"]).status_code == 403
        assert client.delete(f"{API}/submissions/{submission['id']}", headers=admin["headers"]).status_code == 200
        assert client.get(f"{API}/submissions/{submission['id']}", headers=admin["headers"]).status_code == 404
