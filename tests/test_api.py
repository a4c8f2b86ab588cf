import pytest
from fastapi.testclient import TestClient

from learning_star.config import IngestionSettings, get_settings
from learning_star.main import app


@pytest.fixture()
def client():
    app.dependency_overrides[get_settings] = lambda: IngestionSettings(detect_language=False)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _upload(client: TestClient, file_name: str, data: bytes, content_type: str, **params):
    return client.post(
        "/resources/res-42/process",
        params=params,
        data={"course_id": "course-1", "user_id": "user-7"},
        files={"file": (file_name, data, content_type)},
    )


def test_healthz_returns_ok() -> None:
    response = TestClient(app).get("/healthz")

    assert response.status_code == 200
    assert response.text == "ok"


def test_process_text_upload(client) -> None:
    response = _upload(client, "notes.txt", b"Hello world. This is Learning Star.", "text/plain")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["resourceId"] == "res-42"
    assert "errors" not in body
    assert body["extractedContent"]["plainText"] == "Hello world. This is Learning Star."
    assert len(body["chunks"]) == 1
    chunk = body["chunks"][0]
    assert chunk["pointerStart"] == {"resourceId": "res-42", "fileType": "txt", "pageNumber": 1}
    assert chunk["embeddingModel"] == "mock-embedding"
    assert chunk["metadata"] == {"chunkIndex": 0}
    assert "embedding" not in chunk


def test_process_returns_vectors_when_requested(client) -> None:
    response = _upload(
        client,
        "notes.txt",
        b"Hello world.",
        "text/plain",
        include_vectors="true",
        mock_embeddings="true",
    )

    assert response.status_code == 200
    assert len(response.json()["chunks"][0]["embedding"]) == 1536


def test_process_pdf_upload(client, pdf_factory) -> None:
    data = pdf_factory(["Page one.", "Page two."])

    response = _upload(client, "slides.pdf", data, "application/pdf")

    body = response.json()
    assert body["status"] == "success"
    assert [chunk["pointerStart"]["pageNumber"] for chunk in body["chunks"]] == [1, 2]


def test_process_reports_missing_parser_as_failed_run(client) -> None:
    response = _upload(
        client,
        "deck.pptx",
        b"PK\x03\x04",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "failed"
    assert body["chunks"] == []
    assert body["errors"] == ["No parser available for file type: pptx"]
    assert body["errorKinds"] == ["no_parser"]


def test_explicit_file_type_overrides_detection(client) -> None:
    response = client.post(
        "/resources/res-42/process",
        data={"course_id": "course-1", "user_id": "user-7", "file_type": "TXT"},
        files={"file": ("upload.bin", b"Body text.", "application/octet-stream")},
    )

    assert response.status_code == 200
    assert response.json()["chunks"][0]["pointerStart"]["fileType"] == "txt"


def test_unknown_format_is_rejected(client) -> None:
    response = _upload(client, "archive.zzz", b"\x00\x01", "application/octet-stream")

    assert response.status_code == 415
    assert "archive.zzz" in response.json()["detail"]
