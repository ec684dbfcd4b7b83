"""
Tests for API endpoints: status code mapping, error bodies, health and headers.
"""
import pytest
from sqlalchemy.exc import OperationalError

from digital_forms.services.link_service import LinkService
from digital_forms.services.submission_service import SubmissionService
from tests.conftest import auth_headers, make_user, principal_for

API = "/api"


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data

    def test_root_endpoint(self, client):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert "message" in data
        assert "version" in data
        assert data["docs"] == f"{API}/docs"

    def test_bootstrap_admin_can_log_in(self, client):
        """Startup seeds the bootstrap admin."""
        from digital_forms.config import settings

        response = client.post(
            f"{API}/auth/login",
            json={"username": settings.BOOTSTRAP_ADMIN_USERNAME, "password": settings.BOOTSTRAP_ADMIN_PASSWORD}
        )

        assert response.status_code == 200
        assert response.json()["user"]["role"] == "admin"


class TestSecurityHeaders:
    """Tests for security headers in responses."""

    def test_csp_header(self, client):
        response = client.get("/health")

        assert "default-src 'none'" in response.headers["Content-Security-Policy"]

    def test_content_type_options_header(self, client):
        response = client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_frame_options_header(self, client):
        response = client.get("/health")

        assert response.headers["X-Frame-Options"] == "DENY"

    def test_request_id_header(self, client):
        response = client.get("/health", headers={"X-Request-ID": "trace-me"})

        assert response.headers["X-Request-ID"] == "trace-me"

    def test_request_too_large(self, client):
        response = client.post(
            f"{API}/auth/login",
            content=b"x" * (2 * 1024 * 1024),
            headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 413


class TestAuthEndpoints:

    @pytest.mark.asyncio
    async def test_login_and_validate(self, async_client, db_session, agent_a):
        response = await async_client.post(
            f"{API}/auth/login", json={"username": "agenta", "password": "password123"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["username"] == "agenta"
        assert "password_hash" not in body["user"]

        validate = await async_client.post(
            f"{API}/auth/validate", headers={"Authorization": f"Bearer {body['token']}"}
        )
        assert validate.status_code == 200
        assert validate.json()["valid"] is True
        assert validate.json()["user"]["user_id"] == agent_a.id

    @pytest.mark.asyncio
    async def test_login_errors_identical(self, async_client, db_session, agent_a):
        unknown = await async_client.post(f"{API}/auth/login", json={"username": "ghost", "password": "x"})
        wrong = await async_client.post(f"{API}/auth/login", json={"username": "agenta", "password": "x"})

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()
        assert unknown.json()["error_code"] == "invalid_credentials"

    @pytest.mark.asyncio
    async def test_validate_invalid_token(self, async_client, db_session):
        response = await async_client.post(f"{API}/auth/validate", headers={"Authorization": "Bearer junk"})

        assert response.status_code == 200
        assert response.json() == {"valid": False, "user": None}

    @pytest.mark.asyncio
    async def test_missing_token_rejected(self, async_client, db_session):
        response = await async_client.get(f"{API}/forms/my-links")

        assert response.status_code == 401
        assert response.json()["error_code"] == "invalid_credentials"
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_invalid_token_is_401(self, async_client, db_session):
        response = await async_client.get(f"{API}/forms/my-links", headers={"Authorization": "Bearer junk"})

        assert response.status_code == 401
        assert response.json()["error_code"] == "invalid_credentials"

    @pytest.mark.asyncio
    async def test_change_password_wrong_current_is_400(self, async_client, db_session, agent_a):
        response = await async_client.post(
            f"{API}/auth/change-password",
            json={"currentPassword": "wrong", "newPassword": "whatever"},
            headers=auth_headers(agent_a)
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_credentials"

    @pytest.mark.asyncio
    async def test_change_password_success(self, async_client, db_session, agent_a):
        response = await async_client.post(
            f"{API}/auth/change-password",
            json={"current_password": "password123", "new_password": "brand-new"},
            headers=auth_headers(agent_a)
        )

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_me_and_logout(self, async_client, db_session, agent_a):
        me = await async_client.get(f"{API}/auth/me", headers=auth_headers(agent_a))
        logout = await async_client.post(f"{API}/auth/logout", headers=auth_headers(agent_a))

        assert me.status_code == 200
        assert me.json()["username"] == "agenta"
        assert logout.status_code == 200


class TestFormEndpoints:

    @pytest.mark.asyncio
    async def test_create_link(self, async_client, db_session, agent_a):
        response = await async_client.post(
            f"{API}/forms/create-link",
            json={"unit_number": "101", "sales_agent": "A", "client_email": "c@example.com"},
            headers=auth_headers(agent_a)
        )

        assert response.status_code == 201
        link = response.json()["link"]
        assert link["status"] == "active"
        assert link["public_url"].endswith(link["link_code"])
        assert link["expiry_days"] == 14

    @pytest.mark.asyncio
    async def test_create_link_blank_unit_is_400(self, async_client, db_session, agent_a):
        response = await async_client.post(
            f"{API}/forms/create-link",
            json={"unit_number": " ", "sales_agent": "A"},
            headers=auth_headers(agent_a)
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_argument"

    @pytest.mark.asyncio
    async def test_create_link_missing_field_is_400(self, async_client, db_session, agent_a):
        response = await async_client.post(
            f"{API}/forms/create-link",
            json={"unit_number": "101"},
            headers=auth_headers(agent_a)
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_argument"
        assert "sales_agent" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_my_links_shows_expired(self, async_client, db_session, agent_a):
        await LinkService.create_link(db_session, principal_for(agent_a), "101", "A", expiry_days=0)

        response = await async_client.get(f"{API}/forms/my-links", headers=auth_headers(agent_a))

        assert response.status_code == 200
        assert response.json()["links"][0]["status"] == "expired"

    @pytest.mark.asyncio
    async def test_update_and_delete_status_codes(self, async_client, db_session, agent_a, agent_b):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        url = f"{API}/forms/link/{link.id}"

        forbidden = await async_client.put(url, json={"notes": "x"}, headers=auth_headers(agent_b))
        missing = await async_client.put(f"{API}/forms/link/nope", json={"notes": "x"}, headers=auth_headers(agent_a))
        empty = await async_client.put(url, json={}, headers=auth_headers(agent_a))
        ok = await async_client.put(url, json={"notes": "x"}, headers=auth_headers(agent_a))
        delete_forbidden = await async_client.delete(url, headers=auth_headers(agent_b))
        deleted = await async_client.delete(url, headers=auth_headers(agent_a))

        assert forbidden.status_code == 403
        assert forbidden.json()["error_code"] == "forbidden"
        assert missing.status_code == 404
        assert empty.status_code == 400
        assert ok.status_code == 200
        assert ok.json()["link"]["notes"] == "x"
        assert delete_forbidden.status_code == 403
        assert deleted.status_code == 200
        assert deleted.json()["link"]["status"] == "deleted"

    @pytest.mark.asyncio
    async def test_all_links_admin_only(self, async_client, db_session, agent_a, admin_user):
        denied = await async_client.get(f"{API}/forms/all-links", headers=auth_headers(agent_a))
        allowed = await async_client.get(f"{API}/forms/all-links", headers=auth_headers(admin_user))

        assert denied.status_code == 403
        assert allowed.status_code == 200


class TestSubmissionEndpoints:

    @pytest.mark.asyncio
    async def test_public_submit_flow(self, async_client, db_session, agent_a, agent_b, admin_user):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")

        form = await async_client.get(f"{API}/submissions/form/{link.link_code}")
        assert form.status_code == 200
        assert form.json()["unit_number"] == "101"

        submitted = await async_client.post(
            f"{API}/submissions/submit/{link.link_code}",
            json={"customer_name": "Bob", "form_data": {"phone": "555"}}
        )
        assert submitted.status_code == 201
        submission_id = submitted.json()["submission_id"]

        mine = await async_client.get(f"{API}/submissions/my-submissions", headers=auth_headers(agent_a))
        assert [s["id"] for s in mine.json()["submissions"]] == [submission_id]

        everything = await async_client.get(f"{API}/submissions/all-submissions", headers=auth_headers(admin_user))
        assert submission_id in [s["id"] for s in everything.json()["submissions"]]

        other = await async_client.put(
            f"{API}/submissions/{submission_id}/review",
            json={"status": "approved"},
            headers=auth_headers(agent_b)
        )
        assert other.status_code == 403

        bad_status = await async_client.put(
            f"{API}/submissions/{submission_id}/review",
            json={"status": "archived"},
            headers=auth_headers(agent_a)
        )
        assert bad_status.status_code == 400

        reviewed = await async_client.put(
            f"{API}/submissions/{submission_id}/review",
            json={"status": "approved", "review_notes": "looks good"},
            headers=auth_headers(admin_user)
        )
        assert reviewed.status_code == 200
        assert reviewed.json()["submission"]["reviewed_by"] == admin_user.id

        fetched = await async_client.get(f"{API}/submissions/{submission_id}", headers=auth_headers(agent_a))
        assert fetched.json()["status"] == "approved"
        assert fetched.json()["review_notes"] == "looks good"

    @pytest.mark.asyncio
    async def test_unknown_and_expired_codes_look_alike(self, async_client, db_session, agent_a):
        expired = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A", expiry_days=0)
        payload = {"customer_name": "Bob", "form_data": {}}

        unknown = await async_client.post(f"{API}/submissions/submit/unknown-code", json=payload)
        lapsed = await async_client.post(f"{API}/submissions/submit/{expired.link_code}", json=payload)

        assert unknown.status_code == 404
        assert unknown.json()["error_code"] == "not_found"
        assert lapsed.status_code == 410
        assert lapsed.json()["error_code"] == "expired"
        assert unknown.json()["detail"] == lapsed.json()["detail"] == "This form link is no longer available"

    @pytest.mark.asyncio
    async def test_public_form_for_deleted_link(self, async_client, db_session, agent_a):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        await LinkService.soft_delete(db_session, principal_for(agent_a), link.id)

        response = await async_client.get(f"{API}/submissions/form/{link.link_code}")

        assert response.status_code == 410
        assert response.json()["detail"] == "This form link is no longer available"

    @pytest.mark.asyncio
    async def test_submit_missing_name_is_400(self, async_client, db_session, agent_a):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")

        response = await async_client.post(
            f"{API}/submissions/submit/{link.link_code}", json={"form_data": {"a": 1}}
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_argument"

    @pytest.mark.asyncio
    async def test_export_csv(self, async_client, db_session, agent_a, admin_user):
        link = await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")
        await SubmissionService.submit(db_session, link.link_code, "Bob", {"a": 1})

        denied = await async_client.get(f"{API}/submissions/export/csv", headers=auth_headers(agent_a))
        response = await async_client.get(f"{API}/submissions/export/csv", headers=auth_headers(admin_user))

        assert denied.status_code == 403
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        assert response.text.splitlines()[0].startswith("Submission ID,Customer Name")


class TestDashboardAndAdminEndpoints:

    @pytest.mark.asyncio
    async def test_dashboard_shape_by_role(self, async_client, db_session, agent_a, admin_user):
        agent = await async_client.get(f"{API}/dashboard/stats", headers=auth_headers(agent_a))
        admin = await async_client.get(f"{API}/dashboard/stats", headers=auth_headers(admin_user))

        assert agent.status_code == admin.status_code == 200
        assert agent.json()["stats"]["system"] is None
        assert admin.json()["stats"]["system"]["total_users"] == 2

    @pytest.mark.asyncio
    async def test_admin_user_crud(self, async_client, db_session, admin_user, agent_a):
        headers = auth_headers(admin_user)

        created = await async_client.post(
            f"{API}/admin/users",
            json={
                "username": "newagent",
                "password": "pw-123456",
                "email": "newagent@example.com",
                "full_name": "New Agent"
            },
            headers=headers
        )
        assert created.status_code == 201
        new_id = created.json()["id"]

        duplicate = await async_client.post(
            f"{API}/admin/users",
            json={
                "username": "newagent",
                "password": "pw",
                "email": "other@example.com",
                "full_name": "Dup"
            },
            headers=headers
        )
        assert duplicate.status_code == 400

        updated = await async_client.put(
            f"{API}/admin/users/{new_id}", json={"department": "East"}, headers=headers
        )
        assert updated.status_code == 200
        assert updated.json()["department"] == "East"

        listing = await async_client.get(f"{API}/admin/users", headers=headers)
        assert {"admin1", "agenta", "newagent"} <= {u["username"] for u in listing.json()["users"]}

        deleted = await async_client.delete(f"{API}/admin/users/{new_id}", headers=headers)
        assert deleted.status_code == 200

        self_delete = await async_client.delete(f"{API}/admin/users/{admin_user.id}", headers=headers)
        assert self_delete.status_code == 400

        missing = await async_client.put(f"{API}/admin/users/9999", json={"department": "x"}, headers=headers)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_admin_routes_forbidden_for_agents(self, async_client, db_session, agent_a):
        response = await async_client.get(f"{API}/admin/users", headers=auth_headers(agent_a))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_deactivated_user_token_rejected(self, async_client, db_session, admin_user):
        victim = await make_user(db_session, "victim")
        headers = auth_headers(victim)
        assert (await async_client.get(f"{API}/forms/my-links", headers=headers)).status_code == 200

        await async_client.delete(f"{API}/admin/users/{victim.id}", headers=auth_headers(admin_user))

        assert (await async_client.get(f"{API}/forms/my-links", headers=headers)).status_code == 401

    @pytest.mark.asyncio
    async def test_activity_log(self, async_client, db_session, admin_user, agent_a):
        await LinkService.create_link(db_session, principal_for(agent_a), "101", "A")

        response = await async_client.get(
            f"{API}/admin/activity",
            params={"action": "create_form_link"},
            headers=auth_headers(admin_user)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["logs"][0]["user_id"] == agent_a.id


class _UnreachableSession:
    """Session stand-in whose every query fails as if the database were down."""

    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    async def rollback(self):
        pass


class TestStoreUnavailable:

    @pytest.fixture
    def failing_db(self):
        from digital_forms.database import get_db
        from digital_forms.main import app

        async def override_get_db():
            yield _UnreachableSession()

        app.dependency_overrides[get_db] = override_get_db
        yield
        app.dependency_overrides.pop(get_db, None)

    @pytest.mark.asyncio
    async def test_health_reports_store_unavailable(self, async_client, failing_db):
        response = await async_client.get("/health")

        assert response.status_code == 503
        assert response.json()["error_code"] == "store_unavailable"

    @pytest.mark.asyncio
    async def test_operational_error_maps_to_503(self, async_client, failing_db, agent_a):
        response = await async_client.get(f"{API}/dashboard/stats", headers=auth_headers(agent_a))

        assert response.status_code == 503
        assert response.json()["error_code"] == "store_unavailable"
        assert "locked" not in response.json()["detail"]


class TestPublicRateLimit:

    @pytest.fixture
    def rate_limiting_on(self, monkeypatch):
        from digital_forms.middleware.rate_limit import limiter

        monkeypatch.setattr(limiter, "enabled", True)
        limiter.reset()
        yield
        limiter.reset()

    @pytest.mark.asyncio
    async def test_public_form_lookups_are_limited(self, async_client, db_session, rate_limiting_on):
        from digital_forms.config import settings

        allowed = int(settings.RATE_LIMIT_PUBLIC.split("/")[0])
        for _ in range(allowed):
            response = await async_client.get(f"{API}/submissions/form/guess-a-code")
            assert response.status_code == 404

        blocked = await async_client.get(f"{API}/submissions/form/guess-a-code")

        assert blocked.status_code == 429
        assert blocked.json()["error_code"] == "rate_limited"
