"""
Integration tests for the cron endpoints.
"""

import pytest
from unittest.mock import AsyncMock, patch


class TestCronEndpoints:
    """Tests for /api/cron."""

    @pytest.mark.integration
    def test_expiry_alerts(self, client):
        with patch("kondate.api.cron.send_expiry_alerts", new_callable=AsyncMock) as mock_job:
            mock_job.return_value = {"users_checked": 2, "alerts_sent": 1, "errors": 0}
            response = client.get("/api/cron/expiry-alerts")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["alerts_sent"] == 1
        assert data["job"] == "expiry-alerts"
        assert "timestamp" in data

    @pytest.mark.integration
    def test_archive_drafts_runs_against_service(self, client, draft_service, clock, test_user_id):
        client.post(f"/api/shopping/drafts?user_id={test_user_id}", json={"range_days": 1})
        clock.advance(days=2)

        with patch("kondate.jobs.drafts.get_shopping_draft_service", return_value=draft_service):
            response = client.get("/api/cron/archive-drafts")

        assert response.status_code == 200
        assert response.json()["archived"] == 1

    @pytest.mark.integration
    def test_trigger_unknown_job(self, client):
        response = client.post("/api/cron/trigger/nonexistent")
        assert response.status_code == 404

    @pytest.mark.integration
    def test_trigger_archive(self, client):
        with patch("kondate.api.cron.archive_stale_drafts", new_callable=AsyncMock) as mock_job:
            mock_job.return_value = {"archived": 0}
            response = client.post("/api/cron/trigger/archive-drafts")

        assert response.status_code == 200
        mock_job.assert_awaited_once()

    @pytest.mark.integration
    def test_secret_required_from_remote_hosts(self, client):
        with patch("kondate.api.cron.get_settings") as mock_settings, \
             patch("kondate.api.cron.archive_stale_drafts", new_callable=AsyncMock) as mock_job:
            mock_settings.return_value.cron_secret = "s3cret"
            mock_job.return_value = {"archived": 0}

            response = client.get("/api/cron/archive-drafts", headers={"host": "kondate.example.com"})
            assert response.status_code == 401

            response = client.get(
                "/api/cron/archive-drafts",
                headers={"host": "kondate.example.com", "Authorization": "Bearer s3cret"},
            )
            assert response.status_code == 200

            response = client.get(
                "/api/cron/archive-drafts",
                headers={"host": "kondate.example.com", "X-Cron-Secret": "s3cret"},
            )
            assert response.status_code == 200

            response = client.get("/api/cron/archive-drafts", headers={"host": "localhost:8000"})
            assert response.status_code == 200
        assert mock_job.await_count == 3
