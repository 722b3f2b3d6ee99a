"""Integration tests for app-level error handling."""

from api.deps import get_snapshot_store
from main import app
from services.exceptions import StorageError


class BrokenStore:
    def list_snapshots(self, user_id, since):
        raise StorageError("failed to query asset snapshots", "list_snapshots")

    def list_details(self, user_id):
        raise StorageError("failed to query asset details", "list_details")


class TestStorageErrorHandler:
    def test_storage_failure_is_500(self, client, caplog):
        app.dependency_overrides[get_snapshot_store] = lambda: BrokenStore()

        response = client.get("/api/analytics/pnl/summary")

        assert response.status_code == 500
        assert response.json() == {"detail": "Storage error"}
        assert "list_snapshots" in caplog.text

    def test_health_score_storage_failure(self, client):
        app.dependency_overrides[get_snapshot_store] = lambda: BrokenStore()

        response = client.get("/api/analytics/health-score")

        assert response.status_code == 500
