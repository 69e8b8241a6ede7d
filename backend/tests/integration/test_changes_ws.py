"""
Integration tests for the change feed WebSocket.

Tests cover:
- A committed API write reaches connected clients as a change message
- Ping/pong keepalive
"""


class TestChangesWebSocket:

    def test_ping(self, test_client):
        with test_client.websocket_connect("/api/changes/ws") as websocket:
            websocket.send_text("ping")
            assert websocket.receive_text() == "pong"

    def test_check_in_is_pushed(self, test_client, sample_attendee):
        guid = sample_attendee(name="Ann Lee", email="ann@x.io").guid

        with test_client.websocket_connect("/api/changes/ws") as websocket:
            websocket.send_text("ping")
            assert websocket.receive_text() == "pong"

            response = test_client.post(f"/api/attendees/{guid}/check-in")
            assert response.status_code == 200

            message = websocket.receive_json()

        assert message["type"] == "change"
        assert message["table"] == "attendees"
        assert message["change_kind"] == "UPDATE"
        assert message["payload"]["guid"] == guid
        assert message["payload"]["checked_in"] is True
        assert message["payload"]["check_in_time"] is not None
