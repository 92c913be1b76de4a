"""
TSA Songbook Editor - JSON API Tests

Exercises every route through FastAPI's TestClient against a temporary
store, including the HTTP status mapping of service errors.
"""

import json
import sqlite3
from unittest.mock import patch

from songbook import database
from tests.conftest import make_song, run


def _upload(text: str, filename: str = "songs.json"):
    return {"file": (filename, text.encode("utf-8"), "application/json")}


def _update_body(song, **overrides):
    body = {
        "hymnNumber": song["hymnNumber"],
        "titleMarathi": song["titleMarathi"],
        "titleEnglish": song["titleEnglish"],
        "category": song["category"],
        "lyrics": song["lyrics"],
    }
    body.update(overrides)
    return body


class TestHealth:
    def test_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["database"] == "ok"


class TestSongList:
    def test_list_and_stats(self, client, seed_songs):
        seed_songs(make_song(3, verified=True), 1, 2)
        data = client.get("/api/songs").json()
        assert [s["id"] for s in data["songs"]] == ["1", "2", "3"]
        assert data["stats"] == {"total": 3, "verified": 1, "showing": 3}
        assert "lyrics" not in data["songs"][0]

    def test_search(self, client, seed_songs):
        seed_songs(1, 2, make_song(3, category="Prayer"))
        data = client.get("/api/songs", params={"search": "prayer"}).json()
        assert [s["id"] for s in data["songs"]] == ["3"]
        assert data["stats"]["showing"] == 1
        assert data["stats"]["total"] == 3


class TestCreate:
    def test_create(self, client):
        resp = client.post(
            "/api/songs",
            json={"hymnNumber": "8", "titleMarathi": "आठ", "lyrics": "ओळ"},
        )
        assert resp.status_code == 201
        assert resp.json()["redirect"] == "8"
        assert run(database.get_song("8"))["verified"] is False

    def test_conflict(self, client, seed_songs):
        seed_songs(8)
        resp = client.post("/api/songs", json={"hymnNumber": 8, "titleMarathi": "T"})
        assert resp.status_code == 409
        assert "already exists" in resp.json()["detail"]

    def test_blank_number(self, client):
        resp = client.post("/api/songs", json={"hymnNumber": "", "titleMarathi": "T"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Hymn number is required"

    def test_number_too_large(self, client, db_path):
        resp = client.post(
            "/api/songs",
            json={"hymnNumber": "99999999999999999999", "titleMarathi": "T"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "SongValidationError"
        assert run(database.count_songs()) == 0


class TestGetSong:
    def test_found(self, client, seed_songs):
        seed_songs(make_song(4, verified=True))
        data = client.get("/api/songs/4").json()
        assert data["song"]["hymnNumber"] == 4
        assert data["locked"] is True
        assert data["lyricsStats"]["words"] > 0

    def test_not_found(self, client, db_path):
        resp = client.get("/api/songs/404")
        assert resp.status_code == 404
        assert resp.json()["error"] == "SongNotFoundError"


class TestUpdateSong:
    def test_save_in_place(self, client, seed_songs):
        (doc,) = seed_songs(4)
        resp = client.put("/api/songs/4", json=_update_body(doc, lyrics="नवे"))
        assert resp.status_code == 200
        data = resp.json()
        assert data["state"] == "ready"
        assert data["redirect"] is None
        assert data["message"] == "Changes saved successfully"
        assert run(database.get_song("4"))["lyrics"] == "नवे"

    def test_rename(self, client, seed_songs):
        (doc,) = seed_songs(4)
        data = client.put("/api/songs/4", json=_update_body(doc, hymnNumber=40)).json()
        assert data["state"] == "redirecting"
        assert data["redirect"] == "40"
        assert client.get("/api/songs/4").status_code == 404
        assert client.get("/api/songs/40").status_code == 200

    def test_rename_conflict(self, client, seed_songs):
        a, _ = seed_songs(4, 5)
        resp = client.put("/api/songs/4", json=_update_body(a, hymnNumber=5))
        assert resp.status_code == 409
        assert run(database.get_song("4")) == a

    def test_rename_to_number_too_large(self, client, seed_songs):
        (doc,) = seed_songs(4)
        resp = client.put(
            "/api/songs/4", json=_update_body(doc, hymnNumber="99999999999999999999")
        )
        assert resp.status_code == 400
        assert run(database.get_all_songs()) == [doc]

    def test_locked(self, client, seed_songs):
        (doc,) = seed_songs(make_song(4, verified=True))
        resp = client.put("/api/songs/4", json=_update_body(doc, lyrics="x"))
        assert resp.status_code == 423
        assert run(database.get_song("4")) == doc


class TestDeleteAndVerify:
    def test_delete_needs_confirm(self, client, seed_songs):
        seed_songs(4)
        assert client.delete("/api/songs/4").status_code == 400
        resp = client.delete("/api/songs/4", params={"confirm": "true"})
        assert resp.status_code == 200
        assert resp.json() == {"state": "deleted", "message": "Song 4 deleted successfully"}
        assert run(database.get_song("4")) is None

    def test_verified_cannot_be_deleted_until_unverified(self, client, seed_songs):
        seed_songs(make_song(4, verified=True))
        resp = client.delete("/api/songs/4", params={"confirm": "true"})
        assert resp.status_code == 423

        resp = client.post("/api/songs/4/verify", params={"confirm": "true"})
        assert resp.status_code == 200
        assert resp.json()["locked"] is False
        assert resp.json()["state"] == "ready"
        assert resp.json()["message"] == "Song unverified successfully"

        resp = client.delete("/api/songs/4", params={"confirm": "true"})
        assert resp.status_code == 200

    def test_verify_needs_confirm(self, client, seed_songs):
        seed_songs(4)
        assert client.post("/api/songs/4/verify").status_code == 400
        assert run(database.get_song("4"))["verified"] is False


class TestImport:
    def test_validate(self, client, sample_import_text):
        resp = client.post("/api/import/validate", files=_upload(sample_import_text))
        assert resp.status_code == 200
        data = resp.json()
        assert data["valid"] is True
        assert data["summary"]["totalSongs"] == 3
        assert data["filename"] == "songs.json"

    def test_validate_reports_error(self, client):
        resp = client.post("/api/import/validate", files=_upload('{"a": 1}'))
        assert resp.status_code == 200
        assert resp.json() == {
            "filename": "songs.json",
            "valid": False,
            "error": "Root JSON must be an array.",
        }

    def test_wrong_extension(self, client):
        resp = client.post("/api/import/validate", files=_upload("[]", "songs.txt"))
        assert resp.status_code == 400

    def test_too_large(self, client):
        with patch("songbook.routes.api.MAX_IMPORT_SIZE_BYTES", 10):
            resp = client.post("/api/import/validate", files=_upload("[" + " " * 64 + "]"))
        assert resp.status_code == 413

    def test_import_replaces(self, client, seed_songs, sample_import_text):
        seed_songs(50)
        resp = client.post(
            "/api/import",
            files=_upload(sample_import_text),
            data={"confirm": "true", "confirm_text": "IMPORT"},
        )
        assert resp.status_code == 200
        assert resp.json()["imported"] == 3
        assert sorted(run(database.get_all_keys())) == ["1", "105", "2"]

    def test_import_counts_equivalent_ids_once(self, client, db_path):
        records = [
            {"id": "2", "title_marathi": "A", "category": "C", "lyrics": "L"},
            {"id": "02", "title_marathi": "B", "category": "C", "lyrics": "L"},
        ]
        resp = client.post(
            "/api/import",
            files=_upload(json.dumps(records)),
            data={"confirm": "true", "confirm_text": "IMPORT"},
        )
        assert resp.json()["imported"] == 1
        assert run(database.count_songs()) == 1

    def test_import_non_text_title(self, client, seed_songs):
        seed_songs(50)
        records = [{"id": "2", "title_marathi": {"a": 1}, "category": "C", "lyrics": "L"}]
        resp = client.post(
            "/api/import",
            files=_upload(json.dumps(records)),
            data={"confirm": "true", "confirm_text": "IMPORT"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "ImportValidationError"
        assert run(database.get_all_keys()) == ["50"]

    def test_import_needs_phrase(self, client, seed_songs, sample_import_text):
        seed_songs(50)
        resp = client.post(
            "/api/import",
            files=_upload(sample_import_text),
            data={"confirm": "true", "confirm_text": "import"},
        )
        assert resp.status_code == 400
        assert run(database.get_all_keys()) == ["50"]

    def test_import_invalid_json(self, client, seed_songs):
        seed_songs(50)
        resp = client.post(
            "/api/import",
            files=_upload("[{"),
            data={"confirm": "true", "confirm_text": "IMPORT"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "ImportParseError"

    def test_import_store_failure(self, client, seed_songs, sample_import_text):
        seed_songs(50)
        with patch(
            "songbook.database.commit_batch",
            side_effect=sqlite3.OperationalError("database is locked"),
        ):
            resp = client.post(
                "/api/import",
                files=_upload(sample_import_text),
                data={"confirm": "true", "confirm_text": "IMPORT"},
            )
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Import failed. No data was changed."
        assert run(database.get_all_keys()) == ["50"]


class TestExport:
    def test_download(self, client, seed_songs):
        seed_songs(2, 1)
        resp = client.get("/api/export")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/json")
        assert 'filename="tsa_songbook.json"' in resp.headers["content-disposition"]
        assert [r["id"] for r in json.loads(resp.content)] == ["1", "2"]

    def test_round_trip_through_api(self, client, seed_songs):
        seed_songs(make_song(1, verified=True), 2)
        exported = client.get("/api/export").content.decode("utf-8")
        resp = client.post(
            "/api/import",
            files=_upload(exported),
            data={"confirm": "true", "confirm_text": "IMPORT"},
        )
        assert resp.json()["imported"] == 2
        assert client.get("/api/export").content.decode("utf-8") == exported


class TestStoreErrors:
    def test_store_failure_is_503(self, client, seed_songs):
        seed_songs(1)
        with patch(
            "songbook.database.get_all_songs",
            side_effect=sqlite3.OperationalError("unable to open database file"),
        ):
            resp = client.get("/api/songs")
        assert resp.status_code == 503
        assert "try again" in resp.json()["detail"]
