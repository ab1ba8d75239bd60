"""
Tests for the HTTP API.
"""

import time

import httpx
import pytest

import polytrans.core.database as db
from polytrans import config
from polytrans.receiver.status import StatusManager
from polytrans.web import tasks

from conftest import FakeProvider, make_transport

RECEIVER_URL = "http://receiver.test/api/translation/receive-post"


def translate_job(original_post_id=42, **overrides):
    data = {
        "source_language": "en",
        "target_language": "fr",
        "original_post_id": original_post_id,
        "target_endpoint": RECEIVER_URL,
        "toTranslate": {"title": "Hello"},
    }
    data.update(overrides)
    return data


def received(original_post_id, **overrides):
    data = {
        "source_language": "en",
        "target_language": "fr",
        "original_post_id": original_post_id,
        "translated": {"title": "Bonjour", "content": "<p>Bonjour</p>"},
    }
    data.update(overrides)
    return data


@pytest.fixture
def fake_google():
    return FakeProvider("google")


@pytest.fixture
def app(make_app, fake_google):
    transport = make_transport(lambda request: httpx.Response(201, json={"created_post_id": 5}))
    app = make_app(provider_hooks=[lambda registry: registry.register(fake_google)], transport=transport)
    app.delivery_transport = transport
    return app


@pytest.fixture
def client(app):
    return app.test_client()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json() == {"status": "ok"}

    def test_unknown_route_is_json(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert "error" in response.get_json()


class TestTranslateRoute:
    def test_scenario(self, client, app):
        response = client.post("/api/translation/translate", json=translate_job())

        assert response.status_code == 200
        assert response.get_json() == {
            "status": "sent",
            "result": {
                "source_language": "en",
                "target_language": "fr",
                "original_post_id": 42,
                "translated": {"title": "Bonjour"},
            },
        }
        assert str(app.delivery_transport.requests[0].url) == RECEIVER_URL

    def test_not_configured(self, client, fake_google):
        fake_google.configured = False

        response = client.post("/api/translation/translate", json=translate_job())

        assert response.status_code == 400
        assert response.get_json() == {"error": "Translation provider google is not properly configured"}

    def test_missing_endpoint(self, client, fake_google):
        response = client.post("/api/translation/translate", json=translate_job(target_endpoint=None))

        assert response.status_code == 400
        assert response.get_json() == {"error": "target_endpoint required"}
        assert fake_google.calls == []

    def test_invalid_json(self, client):
        response = client.post("/api/translation/translate", data="[1, 2]", content_type="application/json")

        assert response.status_code == 400
        assert response.get_json() == {"error": "Invalid JSON data"}

    def test_forbidden_without_secret(self, client, save_settings, fake_google):
        save_settings(auth={"secret": "shared"}, log_mode="off")

        response = client.post("/api/translation/translate", json=translate_job())

        assert response.status_code == 403
        assert response.get_json() == {"error": "Forbidden"}
        assert fake_google.calls == []

    def test_accepted_with_secret(self, client, save_settings):
        save_settings(auth={"secret": "shared"}, log_mode="off")

        response = client.post(
            "/api/translation/translate",
            json=translate_job(),
            headers={"Authorization": "Bearer shared"},
        )

        assert response.status_code == 200


class TestReceiveRoute:
    def test_creates_post(self, client, original_post):
        response = client.post("/api/translation/receive-post", json=received(original_post["id"]))

        assert response.status_code == 201
        body = response.get_json()
        assert body["status"] == "completed"
        assert body["original_post_id"] == original_post["id"]
        assert body["target_language"] == "fr"
        assert body["message"] == "Translation received and post created"
        assert db.get_post(body["created_post_id"])["title"] == "Bonjour"

    def test_validation_error(self, client, original_post):
        response = client.post(
            "/api/translation/receive-post",
            json=received(original_post["id"], source_language="auto"),
        )

        assert response.status_code == 400
        assert response.get_json() == {"error": "Invalid language code provided", "code": "invalid_language"}

    def test_invalid_json(self, client):
        response = client.post("/api/translation/receive-post", data="not json", content_type="application/json")

        assert response.status_code == 400
        assert response.get_json() == {"error": "Invalid JSON data"}

    def test_ip_allowlist(self, client, save_settings, original_post):
        save_settings(auth={"secret": "shared", "allowed_ips": ["10.0.0.0/8"]}, log_mode="off")
        headers = {"Authorization": "Bearer shared"}

        denied = client.post("/api/translation/receive-post", json=received(original_post["id"]), headers=headers,
                             environ_base={"REMOTE_ADDR": "192.168.1.1"})
        allowed = client.post("/api/translation/receive-post", json=received(original_post["id"]), headers=headers,
                              environ_base={"REMOTE_ADDR": "10.2.3.4"})

        assert denied.status_code == 403
        assert allowed.status_code == 201


class TestRoundTrip:
    def test_translate_then_receive_on_same_site(self, make_app, save_settings, original_post):
        receiver = {}

        def forward(request):
            response = receiver["client"].post(
                request.url.path,
                data=request.content,
                headers={"Content-Type": "application/json", "Authorization": request.headers.get("Authorization", "")},
            )
            return httpx.Response(response.status_code, json=response.get_json())

        app = make_app(
            provider_hooks=[lambda registry: registry.register(FakeProvider("google"))],
            transport=make_transport(forward),
        )
        receiver["client"] = app.test_client()
        save_settings(auth={"secret": "shared"}, languages={"fr": {"status": "publish"}}, log_mode="off")
        post_id = original_post["id"]
        StatusManager().mark_pending(post_id, "fr")

        response = app.test_client().post(
            "/api/translation/translate",
            json=translate_job(post_id),
            headers={"Authorization": "Bearer shared"},
        )

        assert response.status_code == 200
        status = app.test_client().get(f"/api/translation/status/{post_id}/fr").get_json()
        assert status["status"] == "succeeded"
        new_post = db.get_post(status["new_post_id"])
        assert new_post["title"] == "Bonjour"
        assert new_post["status"] == "publish"
        assert db.get_post_translations(post_id) == {"en": post_id, "fr": new_post["id"]}


class TestStatusRoutes:
    def test_get_and_clear(self, client):
        StatusManager().mark_failed(3, "de", "boom")

        status = client.get("/api/translation/status/3/de").get_json()
        assert status["status"] == "failed"
        assert status["error"] == "boom"

        response = client.delete("/api/translation/status/3/de")
        assert response.get_json() == {"message": "Translation status cleared"}
        assert client.get("/api/translation/status/3/de").get_json()["status"] == "not_started"

    def test_invalid_language(self, client):
        assert client.get("/api/translation/status/3/german").status_code == 400

    def test_summary(self, client):
        StatusManager().mark_pending(1, "fr")
        StatusManager().mark_failed(2, "fr", "x")

        assert client.get("/api/translation/status/summary").get_json() == {"pending": 1, "failed": 1, "total": 2}

    def test_check_stuck(self, client):
        StatusManager().mark_pending(1, "fr")

        response = client.post("/api/translation/status/check-stuck", json={"timeout_hours": 1})

        assert response.get_json() == {"checked": 1, "fixed": 0, "stuck": []}

    @pytest.mark.parametrize("timeout_hours", ["soon", 0, -3])
    def test_check_stuck_rejects_bad_timeout(self, client, timeout_hours):
        response = client.post("/api/translation/status/check-stuck", json={"timeout_hours": timeout_hours})
        assert response.status_code == 400


class TestScheduleRoutes:
    @pytest.fixture
    def endpoints(self, save_settings):
        return save_settings(
            translation_endpoint="http://translator.test/api/translation/translate",
            receiver_endpoint=RECEIVER_URL,
            log_mode="off",
        )

    def test_schedule_dispatches_jobs(self, client, endpoints, original_post, app):
        response = client.post(f"/api/posts/{original_post['id']}/schedule", json={"targets": ["fr", "de"]})

        assert response.status_code == 202
        body = response.get_json()
        assert body["languages"] == ["fr", "de"]
        assert set(body["jobs"]) == {"fr", "de"}

        deadline = time.monotonic() + 5
        job_id = body["jobs"]["fr"]
        while time.monotonic() < deadline and not tasks.get_job(job_id).finished_at:
            time.sleep(0.01)

        job = client.get(f"/api/jobs/{job_id}").get_json()
        assert job["state"] == "completed"
        assert job["language"] == "fr"

    def test_targets_required(self, client, endpoints, original_post):
        response = client.post(f"/api/posts/{original_post['id']}/schedule", json={"targets": []})
        assert response.status_code == 400

    def test_missing_post(self, client, endpoints):
        response = client.post("/api/posts/999/schedule", json={"targets": ["fr"]})

        assert response.status_code == 404
        assert response.get_json()["code"] == "not_found"

    def test_endpoints_not_configured(self, client, original_post):
        response = client.post(f"/api/posts/{original_post['id']}/schedule", json={"targets": ["fr"]})

        assert response.status_code == 400
        assert response.get_json()["code"] == "not_configured"

    def test_unknown_job(self, client):
        response = client.get("/api/jobs/does-not-exist")
        assert response.status_code == 404
        assert response.get_json() == {"error": "Job not found"}


class TestSettingsRoutes:
    def test_get_masks_secrets(self, client, save_settings):
        save_settings(auth={"secret": "abc"}, openai={"api_key": "sk-live"}, log_mode="off")

        body = client.get("/api/settings/").get_json()

        assert body["config"]["auth"]["secret"] == "********"
        assert body["config"]["openai"]["api_key"] == "********"
        assert {"id": "google", "name": "Google"} in body["meta"]["providers"]
        assert "header_bearer" in body["meta"]["auth_methods"]

    def test_put_keeps_masked_secret(self, client, save_settings):
        save_settings(auth={"secret": "abc"}, log_mode="off")

        response = client.put("/api/settings/", json={"config": {
            "auth": {"secret": "********", "method": "header_custom"},
            "log_mode": "off",
        }})

        assert response.status_code == 200
        stored = config.load_config()
        assert stored["auth"]["secret"] == "abc"
        assert stored["auth"]["method"] == "header_custom"
        assert response.get_json()["config"]["auth"]["secret"] == "********"

    def test_put_rejects_invalid_values(self, client):
        response = client.put("/api/settings/", json={"config": {"auth": {"method": "carrier_pigeon"}}})

        assert response.status_code == 400
        assert response.get_json()["kind"] == "configuration"

    def test_put_rejects_unknown_provider(self, client):
        response = client.put("/api/settings/", json={"config": {"translation_provider": "deepl"}})

        assert response.status_code == 400
        assert response.get_json() == {"error": "Unknown translation provider: deepl"}

    def test_put_requires_config_object(self, client):
        assert client.put("/api/settings/", json={"translation_provider": "google"}).status_code == 400
