"""HTTP surface tests with an in-memory backend."""

import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeCompleter, build_zip
from miniapp_guide.backend import GuideBackend
from server import app, get_backend

BITCOIN = "com.anam.rehrxj11f38gn09k"


@pytest.fixture
def completer():
    return FakeCompleter()


@pytest.fixture
def client(session_factory, completer, catalog):
    backend = GuideBackend(session_factory=session_factory, completer=completer, catalog=catalog)
    app.dependency_overrides[get_backend] = lambda: backend
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register(client, archive, app_id=BITCOIN, content_type="application/zip"):
    return client.post(
        "/api/v1/analyze/miniapp/register",
        params={"appId": app_id},
        files={"zipFile": ("wallet.zip", archive, content_type)},
    )


def sequence_for(*composable_ids):
    """Sequencing answer that picks candidates by composable id."""
    def respond(system_prompt, user_prompt):
        positions = {}
        for line in user_prompt.splitlines():
            head, _, rest = line.partition(". [")
            if head.isdigit() and rest:
                positions[rest.split("] ", 1)[1].split(" ", 1)[0]] = int(head)
        return json.dumps({
            "steps": [
                {"stepNumber": n, "elementIndex": positions[cid], "message": f"{cid} 누르기"}
                for n, cid in enumerate(composable_ids, start=1)
            ]
        })
    return respond


class TestAnalyzeEndpoints:
    def test_extract_files(self, client, wallet_zip):
        response = client.post(
            "/api/v1/analyze/kotlin/files",
            files={"file": ("wallet.zip", wallet_zip, "application/zip")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert [f["fileName"] for f in body["data"]] == [
            "wallet/app/src/main/java/ui/SendScreen.kt",
            "wallet/app/src/main/java/ui/MainScreen.kt",
        ]

    def test_register_then_browse(self, client, wallet_zip):
        response = register(client, wallet_zip)

        assert response.status_code == 200
        assert response.json()["data"] == 8
        assert response.json()["message"] == "8 UI element(s) indexed."

        screens = client.get(f"/api/v1/analyze/miniapp/{BITCOIN}/screens").json()["data"]
        assert [(s["name"], s["elementCount"]) for s in screens] == [("MainScreen", 3), ("SendScreen", 5)]

        elements = client.get(f"/api/v1/analyze/miniapp/{BITCOIN}/elements", params={"keyword": "송금"}).json()["data"]
        assert [e["composableId"] for e in elements] == ["btn_send"]
        assert elements[0]["screenName"] == "SendScreen"
        assert elements[0]["lineNumber"] == 14

    def test_register_is_idempotent(self, client, wallet_zip):
        register(client, wallet_zip)
        register(client, wallet_zip)

        elements = client.get(f"/api/v1/analyze/miniapp/{BITCOIN}/elements").json()["data"]
        assert len(elements) == 8

    @pytest.mark.parametrize(
        "archive, content_type, status, code",
        [
            (b"", "application/zip", 400, "ARCHIVE4001"),
            (b"PK-data", "text/plain", 400, "ARCHIVE4003"),
            (build_zip({"README.md": "x"}), "application/zip", 400, "ARCHIVE4004"),
            (b"not a zip", "application/octet-stream", 500, "ARCHIVE5001"),
        ],
    )
    def test_register_errors(self, client, archive, content_type, status, code):
        response = register(client, archive, content_type=content_type)

        assert response.status_code == status
        body = response.json()
        assert body["status"] == "error"
        assert body["code"] == code
        assert body["message"]

    def test_register_requires_app_id(self, client, wallet_zip):
        response = client.post(
            "/api/v1/analyze/miniapp/register",
            files={"zipFile": ("wallet.zip", wallet_zip, "application/zip")},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "COMMON400"

    def test_register_blank_app_id(self, client, wallet_zip):
        response = register(client, wallet_zip, app_id="  ")
        assert response.status_code == 400
        assert response.json()["code"] == "COMMON400"


class TestGuideEndpoints:
    def test_query_resolves_app_and_stores_guide(self, client, completer, wallet_zip):
        register(client, wallet_zip)
        # rule match for the app id, then keyword, then sequencing
        completer.responses.extend(["Send", sequence_for("btn_go_send", "btn_send")])

        response = client.post("/api/v1/guide/query", json={"userQuestion": "비트코인 송금하는 방법"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["appId"] == BITCOIN
        assert [s["targetElement"]["composableId"] for s in data["steps"]] == ["btn_go_send", "btn_send"]
        assert data["steps"][0]["actionType"] == "NAVIGATE"
        assert data["steps"][0]["nextScreen"] == "send"
        assert len(completer.calls) == 2

        stored = client.get(f"/api/v1/guide/{data['guideId']}").json()["data"]
        assert stored["intent"] == "Send"
        assert [s["targetElement"] for s in stored["steps"]] == ["btn_go_send", "btn_send"]

        listed = client.get("/api/v1/guide", params={"appId": BITCOIN, "intent": "Send"}).json()["data"]
        assert [g["guideId"] for g in listed] == [data["guideId"]]

    def test_query_for_unindexed_app(self, client):
        response = client.post("/api/v1/guide/query", json={"appId": "com.example.empty", "userQuestion": "송금"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data == {"appId": "com.example.empty", "steps": []}

    def test_query_generation_failure(self, client, completer, wallet_zip):
        register(client, wallet_zip)
        completer.responses.extend(["Send", '{"steps": [{"stepNumber": 1, "elementIndex": 99}]}'])

        response = client.post("/api/v1/guide/query", json={"appId": BITCOIN, "userQuestion": "송금"})

        assert response.status_code == 500
        assert response.json()["code"] == "GUIDE5001"

    @pytest.mark.parametrize("payload", [{}, {"userQuestion": "   "}, {"appId": BITCOIN}])
    def test_query_requires_question(self, client, payload):
        response = client.post("/api/v1/guide/query", json=payload)

        assert response.status_code == 400
        assert response.json() == {"status": "error", "code": "COMMON400", "message": "userQuestion is required."}

    def test_malformed_body(self, client):
        response = client.post(
            "/api/v1/guide/query",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "COMMON400"

    def test_unknown_guide(self, client):
        response = client.get("/api/v1/guide/does-not-exist")

        assert response.status_code == 404
        assert response.json() == {"status": "error", "code": "GUIDE4041", "message": "Guide not found."}

    def test_list_guides_requires_app_id(self, client):
        response = client.get("/api/v1/guide")
        assert response.status_code == 400
        assert response.json()["code"] == "COMMON400"

    def test_unexpected_error_envelope(self, client, monkeypatch):
        backend = app.dependency_overrides[get_backend]()

        def boom(app_id):
            raise RuntimeError("database exploded")

        monkeypatch.setattr(backend, "handle_list_screens", boom)
        response = client.get(f"/api/v1/analyze/miniapp/{BITCOIN}/screens")

        assert response.status_code == 500
        assert response.json() == {"status": "error", "code": "COMMON500", "message": "Internal server error."}
