"""Tests for the Flask web API."""

import pytest

from yarn_forge.web.app import create_app

SCRIPT = """
title: start
---
Sara: Hello!
-> Yes
    Sara: Great!
-> No
    Sara: Okay.
===
"""


@pytest.fixture
def dialogues_root(tmp_path):
    (tmp_path / "intro.yarn").write_text(SCRIPT, encoding="utf-8")
    (tmp_path / "chapter1").mkdir()
    (tmp_path / "chapter1" / "market.yarn").write_text("title: market\n---\nBusy.\n===\n", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("not dialogue", encoding="utf-8")
    return tmp_path


@pytest.fixture
def client(dialogues_root):
    app = create_app(dialogues_root=dialogues_root)
    app.config["TESTING"] = True
    return app.test_client()


def start_session(client, content=SCRIPT, **kwargs):
    response = client.post("/api/play", json={"content": content, **kwargs})
    assert response.status_code == 201
    return response.get_json()


class TestFiles:
    """Test listing and reading dialogue files."""

    def test_list_dialogues(self, client):
        """Only .yarn files are listed, with their folder as category."""
        files = client.get("/api/dialogues").get_json()["files"]

        assert [f["relative_path"] for f in files] == ["chapter1/market.yarn", "intro.yarn"]
        assert files[0]["category"] == "chapter1"
        assert files[1]["category"] == "root"
        assert files[1]["name"] == "intro"

    def test_get_file(self, client):
        """File content is returned."""
        response = client.get("/api/file/intro.yarn")

        assert response.status_code == 200
        assert response.get_json()["content"] == SCRIPT

    def test_get_missing_file(self, client):
        """Missing files are 404."""
        response = client.get("/api/file/missing.yarn")

        assert response.status_code == 404
        assert response.get_json()["error"] == "File not found"

    def test_missing_root(self, tmp_path):
        """A root that doesn't exist lists nothing."""
        app = create_app(dialogues_root=tmp_path / "nowhere")

        assert app.test_client().get("/api/dialogues").get_json() == {"files": []}


class TestParseAndExport:
    """Test parsing and exporting posted content."""

    def test_parse(self, client):
        """Nodes, stats and validation come back together."""
        data = client.post("/api/parse", json={"content": SCRIPT}).get_json()

        assert data["success"] is True
        assert list(data["nodes"]) == ["start"]
        assert data["stats"]["choices"] == 2
        assert data["validation"]["valid"] is True
        assert data["warnings"] == []
        assert data["graph"]["nodes"][0]["id"] == "start"

    def test_parse_reports_problems(self, client):
        """Broken jumps and parse warnings are reported."""
        content = "title: start\n---\n<<>>\n<<jump nowhere>>\n===\n"
        data = client.post("/api/parse", json={"content": content}).get_json()

        assert data["validation"]["valid"] is False
        assert data["validation"]["errors"][0]["message"] == "Jump to undefined node 'nowhere'"
        assert len(data["warnings"]) == 1
        assert data["graph"]["edges"] == [{"source": "start", "target": "nowhere", "missing": True}]

    def test_parse_without_body(self, client):
        """A request without JSON parses empty content."""
        data = client.post("/api/parse").get_json()

        assert data["nodes"] == {}
        assert data["stats"]["nodes"] == 0

    def test_parse_non_object_body(self, client):
        """A JSON body that isn't an object parses empty content."""
        response = client.post("/api/parse", json=["title: start"])

        assert response.status_code == 200
        assert response.get_json()["nodes"] == {}

    def test_parse_rejects_non_string_content(self, client):
        """Content of the wrong type is a JSON 400, not a crash."""
        response = client.post("/api/parse", json={"content": 123})

        assert response.status_code == 400
        assert response.get_json() == {"error": "content must be a string"}

    def test_parse_rejects_non_string_start_node(self, client):
        """start_node must be a string when given."""
        response = client.post("/api/parse", json={"content": SCRIPT, "start_node": ["start"]})

        assert response.status_code == 400
        assert response.get_json()["error"] == "start_node must be a string"

    def test_export_rejects_non_string_content(self, client):
        """Export checks the content type too."""
        response = client.post("/api/export", json={"content": {"title": "start"}})

        assert response.status_code == 400
        assert response.is_json

    def test_export(self, client):
        """Export returns the JSON node tree."""
        data = client.post("/api/export", json={"content": SCRIPT}).get_json()

        assert data["success"] is True
        assert data["json"]["metadata"]["node_count"] == 1
        assert data["json"]["nodes"]["start"]["lines"][0]["text"] == "Hello!"


class TestPlaySessions:
    """Test playing dialogue through sessions."""

    def test_play_through(self, client):
        """Advance and choose walk the dialogue to the end."""
        session = start_session(client, node="start")
        session_id = session["id"]

        assert session["state"] == "line"
        assert session["line"]["text"] == "Hello!"
        assert session["line"]["character"] == "Sara"
        assert session["history"] == ["start"]

        session = client.post(f"/api/play/{session_id}/advance").get_json()
        assert session["state"] == "choices"
        assert session["line"] is None
        assert session["choices"] == [
            {"index": 0, "text": "Yes", "tags": []},
            {"index": 1, "text": "No", "tags": []},
        ]

        session = client.post(f"/api/play/{session_id}/choose", json={"index": 1}).get_json()
        assert session["line"]["text"] == "Okay."

        session = client.post(f"/api/play/{session_id}/advance").get_json()
        assert session["state"] == "ended"

        assert client.get(f"/api/play/{session_id}").get_json()["state"] == "ended"

    def test_missing_start_node(self, client):
        """Starting at an unknown node is 404 and creates no session."""
        response = client.post("/api/play", json={"content": SCRIPT, "node": "nowhere"})

        assert response.status_code == 404
        assert client.application.config["SESSIONS"] == {}

    def test_commands_and_variables(self, client):
        """Fired commands are reported once, variables every time."""
        content = """
title: shop
---
<<set $gold += 5>>
<<give_item potion>>
Merchant: Here you go.
===
"""
        session = start_session(client, content=content, node="shop", variables={"$gold": 10})

        assert session["commands"] == [
            {"command": "set", "arguments": ["$gold", "+=", "5"]},
            {"command": "give_item", "arguments": ["potion"]},
        ]
        assert session["variables"] == {"gold": 15.0}

        session = client.get(f"/api/play/{session['id']}").get_json()
        assert session["commands"] == []
        assert session["variables"] == {"gold": 15.0}

    def test_sessions_are_independent(self, client):
        """Each session runs its own dialogue."""
        first = start_session(client, node="start")
        second = start_session(client, node="start")

        client.post(f"/api/play/{first['id']}/advance")

        assert client.get(f"/api/play/{first['id']}").get_json()["state"] == "choices"
        assert client.get(f"/api/play/{second['id']}").get_json()["state"] == "line"

    def test_bad_variables(self, client):
        """Variables must be an object."""
        response = client.post("/api/play", json={"content": SCRIPT, "variables": [1, 2]})

        assert response.status_code == 400

    def test_bad_content_and_node(self, client):
        """Content and node must be strings."""
        response = client.post("/api/play", json={"content": 123})
        assert response.status_code == 400
        assert response.get_json()["error"] == "content must be a string"

        response = client.post("/api/play", json={"content": SCRIPT, "node": ["start"]})
        assert response.status_code == 400
        assert response.get_json()["error"] == "node must be a string"

        assert client.application.config["SESSIONS"] == {}

    def test_oldest_session_is_evicted(self, dialogues_root):
        """A full session map drops its oldest session."""
        client = create_app(dialogues_root=dialogues_root, max_sessions=2).test_client()

        first = start_session(client, node="start")
        second = start_session(client, node="start")
        third = start_session(client, node="start")

        assert list(client.application.config["SESSIONS"]) == [second["id"], third["id"]]
        assert client.get(f"/api/play/{first['id']}").status_code == 404

    def test_ended_sessions_are_evicted_first(self, dialogues_root):
        """Finished sessions make room before running ones."""
        client = create_app(dialogues_root=dialogues_root, max_sessions=2).test_client()

        first = start_session(client, node="start")
        second = start_session(client, node="start")
        client.post(f"/api/play/{second['id']}/advance")
        client.post(f"/api/play/{second['id']}/choose", json={"index": 0})
        assert client.post(f"/api/play/{second['id']}/advance").get_json()["state"] == "ended"

        third = start_session(client, node="start")

        assert list(client.application.config["SESSIONS"]) == [first["id"], third["id"]]

    def test_choose_errors(self, client):
        """Bad choice requests are rejected without changing the session."""
        session_id = start_session(client, node="start")["id"]

        assert client.post(f"/api/play/{session_id}/choose", json={"index": 0}).status_code == 409

        client.post(f"/api/play/{session_id}/advance")
        assert client.post(f"/api/play/{session_id}/choose", json={}).status_code == 400
        assert client.post(f"/api/play/{session_id}/choose", json={"index": 5}).status_code == 400
        assert client.post(f"/api/play/{session_id}/choose", json={"index": True}).status_code == 400
        assert client.get(f"/api/play/{session_id}").get_json()["state"] == "choices"

    def test_unknown_session(self, client):
        """Unknown session ids are 404."""
        assert client.get("/api/play/nope").status_code == 404
        assert client.post("/api/play/nope/advance").status_code == 404
        assert client.post("/api/play/nope/choose", json={"index": 0}).status_code == 404
        assert client.delete("/api/play/nope").status_code == 404

    def test_delete_session(self, client):
        """Deleted sessions are gone."""
        session_id = start_session(client, node="start")["id"]

        response = client.delete(f"/api/play/{session_id}")
        assert response.status_code == 200
        assert response.get_json() == {"success": True}
        assert client.get(f"/api/play/{session_id}").status_code == 404
