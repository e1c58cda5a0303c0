import json
from unittest import mock

import requests


def through_client(client, broken=()):
    """session.get side effect that serves probes from the Flask test client."""
    def _get(url, timeout=None):
        path = url.replace("http://localhost:8080", "")
        if path in broken:
            raise requests.ConnectionError(f"Failed to establish a new connection to {path}")
        resp = client.get(path)
        response = mock.Mock(spec=requests.Response)
        response.status_code = resp.status_code
        response.ok = resp.status_code < 400
        response.json.return_value = resp.get_json()
        return response
    return _get


class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == 200
        assert data["body"]["status"] == "healthy"
        assert data["body"]["user_count"] == 0
        assert "validation_stats" in data["body"]


class TestUpload:
    def test_multipart_upload(self, upload, sample_users):
        resp = upload(sample_users)
        assert resp.status_code == 200
        body = resp.get_json()["body"]
        assert body["user_count"] == 4
        assert body["accepted"] == 4
        assert body["skipped"] == 0
        assert body["message"]

    def test_raw_body_upload(self, client, sample_users):
        resp = client.post("/users", data=json.dumps(sample_users), content_type="application/json")
        assert resp.status_code == 200
        assert resp.get_json()["body"]["user_count"] == 4

    def test_bad_element_skipped(self, upload, make_user):
        users = [make_user(1), make_user(2, logs=[("01/02/2024", "login")])]
        body = upload(users).get_json()["body"]
        assert body["user_count"] == 1
        assert body["skipped"] == 1

    def test_non_array_rejected(self, client):
        resp = client.post("/users", data='{"id": "x"}', content_type="application/json")
        assert resp.status_code == 400
        data = resp.get_json()
        assert data["status"] == 400
        assert "error" in data["body"]
        assert "detailed_error" in data["body"]

    def test_form_encoded_body_is_read_raw(self, client, sample_users):
        resp = client.post(
            "/users",
            data=json.dumps(sample_users),
            content_type="application/x-www-form-urlencoded",
        )
        assert resp.status_code == 200
        assert resp.get_json()["body"]["user_count"] == 4

    def test_invalid_utf8_rejected(self, client):
        resp = client.post("/users", data=b"[\xff\xfe]", content_type="application/json")
        assert resp.status_code == 400
        data = resp.get_json()
        assert data["status"] == 400
        assert data["body"]["error"]

    def test_empty_body_rejected(self, client):
        resp = client.post("/users", data=b"", content_type="application/json")
        assert resp.status_code == 400

    def test_unterminated_array_rejected(self, client, make_user):
        text = json.dumps([make_user(1)])[:-1]
        resp = client.post("/users", data=text, content_type="application/json")
        assert resp.status_code == 400

    def test_missing_form_field(self, client):
        resp = client.post("/users", data={}, content_type="multipart/form-data")
        assert resp.status_code == 400
        assert "arquivos" in resp.get_json()["body"]["detailed_error"]


class TestQueriesBeforeIngestion:
    def test_every_query_reports_empty_store(self, client):
        for path in ("/superusers", "/top-countries", "/team-insights",
                     "/active-users-per-day", "/evaluation"):
            resp = client.get(path)
            assert resp.status_code == 400, path
            assert "no users in memory" in resp.get_json()["body"]["error"]

    def test_evaluation_issues_no_probes(self, client, http_session):
        client.get("/evaluation")
        http_session.get.assert_not_called()


class TestQueries:
    def test_timing_fields_on_every_query(self, client, upload, sample_users):
        upload(sample_users)
        for path in ("/superusers", "/top-countries", "/team-insights", "/active-users-per-day"):
            body = client.get(path).get_json()["body"]
            assert "timestamp" in body, path
            assert isinstance(body["execution_time_ms"], int), path

    def test_superusers(self, client, upload, sample_users):
        upload(sample_users)
        body = client.get("/superusers").get_json()["body"]
        assert body["count"] == 2
        assert [u["nome"] for u in body["data"]] == ["User 1", "User 2"]
        assert body["data"][0] == sample_users[0]

    def test_top_countries(self, client, upload, sample_users):
        upload(sample_users)
        body = client.get("/top-countries").get_json()["body"]
        assert body["countries"] == [{"country": "Brasil", "total": 2}]

    def test_top_countries_limit(self, client, upload, make_user):
        upload([make_user(n, country=c) for n, c in enumerate(["AR", "BR", "BR", "CL"], start=1)])
        body = client.get("/top-countries?limit=2").get_json()["body"]
        assert body["countries"] == [
            {"country": "BR", "total": 2},
            {"country": "AR", "total": 1},
        ]

    def test_top_countries_bad_limit(self, client, upload, sample_users):
        upload(sample_users)
        assert client.get("/top-countries?limit=0").status_code == 400
        assert client.get("/top-countries?limit=abc").status_code == 400

    def test_team_insights(self, client, upload, sample_users):
        upload(sample_users)
        teams = client.get("/team-insights").get_json()["body"]["teams"]
        assert teams == [
            {"team": "Backend", "total_members": 2, "leaders": 1,
             "completed_projects": 2, "active_percentage": 100.0},
            {"team": "Frontend", "total_members": 2, "leaders": 0,
             "completed_projects": 0, "active_percentage": 50.0},
        ]

    def test_active_users_per_day(self, client, upload, sample_users):
        upload(sample_users)
        logins = client.get("/active-users-per-day").get_json()["body"]["logins"]
        assert logins == [
            {"date": "2024-01-01", "total": 2},
            {"date": "2024-01-02", "total": 2},
        ]

    def test_unknown_route_uses_envelope(self, client):
        resp = client.get("/nope")
        assert resp.status_code == 404
        assert resp.get_json()["status"] == 404


class TestEvaluation:
    def test_all_endpoints_evaluated(self, client, upload, sample_users, http_session):
        upload(sample_users)
        http_session.get.side_effect = through_client(client)
        resp = client.get("/evaluation")
        assert resp.status_code == 200
        body = resp.get_json()["body"]
        assert set(body["tested_endpoints"]) == {
            "/superusers", "/top-countries", "/team-insights", "/active-users-per-day",
        }
        assert body["endpoints_with_errors"] == {}
        for result in body["tested_endpoints"].values():
            assert result["status"] == 200
            assert result["valid_response"] is True
        assert "execution_time_ms" in body

    def test_broken_endpoint_reported_once(self, client, upload, sample_users, http_session):
        upload(sample_users)
        http_session.get.side_effect = through_client(client, broken={"/team-insights"})
        body = client.get("/evaluation").get_json()["body"]
        assert len(body["tested_endpoints"]) == 3
        assert list(body["endpoints_with_errors"]) == ["/team-insights"]
        assert "/team-insights" not in body["tested_endpoints"]


class TestFullFlow:
    def test_reupload_overwrites_by_identifier(self, client, upload, make_user):
        upload([make_user(1, score=100), make_user(2, score=100)])
        assert client.get("/superusers").get_json()["body"]["count"] == 0

        body = upload([make_user(1, score=990)]).get_json()["body"]
        assert body["user_count"] == 2

        superusers = client.get("/superusers").get_json()["body"]
        assert superusers["count"] == 1
        assert superusers["data"][0]["score"] == 990
        assert client.get("/health").get_json()["body"]["user_count"] == 2
