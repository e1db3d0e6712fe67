"""
Tests for the WebSocket chat relay.
"""

from fastapi.testclient import TestClient

import main


class TestChatRelay:

    def test_message_echoed_to_sender(self):
        with TestClient(main.app) as client:
            with client.websocket_connect("/ws/chat") as ws:
                ws.send_json({"username": "priya", "message": "hello"})
                data = ws.receive_json()

        assert data["username"] == "priya"
        assert data["message"] == "hello"
        assert isinstance(data["timestamp"], int)

    def test_broadcast_to_all_connections(self):
        with TestClient(main.app) as client:
            with client.websocket_connect("/ws/chat") as a, client.websocket_connect("/ws/chat") as b:
                a.send_json({"username": "a", "message": "hi all"})

                assert a.receive_json()["message"] == "hi all"
                assert b.receive_json()["message"] == "hi all"

    def test_invalid_message_not_broadcast(self):
        with TestClient(main.app) as client:
            with client.websocket_connect("/ws/chat") as ws:
                ws.send_json({"username": "a"})
                assert "error" in ws.receive_json()

                ws.send_text("not json")
                assert "error" in ws.receive_json()

    def test_online_users(self):
        with TestClient(main.app) as client:
            with client.websocket_connect("/ws/chat") as ws:
                ws.send_json({"username": "rahul", "message": "hey"})
                ws.receive_json()

                online = client.get("/api/chat/online").json()

            assert online["count"] == 1
            assert online["users"] == ["rahul"]

            assert client.get("/api/chat/online").json()["count"] == 0
