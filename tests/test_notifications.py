"""
Tests for notifications: service and HTTP routes.
"""

import asyncio

from crewbase.core.models import NotificationType
from crewbase.notifications.service import NotificationService


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def notify(storage, recipient_id: str, message: str):
    service = NotificationService(storage)
    return asyncio.run(service.notify(recipient_id, NotificationType.LEAVE_REQUEST, message))


class TestNotificationRoutes:
    def test_list_own_newest_first(self, client, signup, storage):
        token, user = signup()
        _, other = signup(email="bob@example.com")
        notify(storage, user["id"], "first")
        notify(storage, user["id"], "second")
        notify(storage, other["id"], "not yours")

        response = client.get("/notifications", headers=bearer(token))

        messages = [n["message"] for n in response.json()["notifications"]]
        assert messages == ["second", "first"]

    def test_list_empty(self, client, signup):
        token, _ = signup()
        response = client.get("/notifications", headers=bearer(token))
        assert response.json() == {"success": True, "notifications": []}

    def test_mark_as_read(self, client, signup, storage):
        token, user = signup()
        notification = notify(storage, user["id"], "hello")

        response = client.put(f"/notifications/{notification.id}/mark-as-read", headers=bearer(token))

        assert response.json() == {"success": True, "message": "Notification marked as read."}
        listed = client.get("/notifications", headers=bearer(token)).json()["notifications"]
        assert listed[0]["is_read"] is True

    def test_mark_someone_elses(self, client, signup, storage):
        _, owner = signup()
        intruder_token, _ = signup(email="eve@example.com")
        notification = notify(storage, owner["id"], "private")

        response = client.put(
            f"/notifications/{notification.id}/mark-as-read",
            headers=bearer(intruder_token),
        )

        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "Unauthorized."}

    def test_mark_missing(self, client, signup):
        token, _ = signup()
        response = client.put("/notifications/ntf_missing/mark-as-read", headers=bearer(token))
        assert response.status_code == 404
        assert response.json()["error"] == "Notification not found."

    def test_requires_session(self, client):
        assert client.get("/notifications").status_code == 401
