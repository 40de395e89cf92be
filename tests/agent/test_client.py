# tests/agent/test_client.py
"""
Unit Tests for ControllerClient
Each call must be exactly one round trip and classify failures correctly
"""

import math

import pytest
import requests

from sync_agent.client import ControllerClient
from sync_agent.errors import HeartbeatError, InvalidSettingsError, RegistrationAttemptError
from sync_agent.schemas import HeartbeatRequest, RegistrationRequest

from conftest import make_response, posted_json


@pytest.fixture
def client(controller_url, mock_session):
    return ControllerClient(controller_url, mock_session, timeout=3.0)


class TestEndpoints:

    def test_paths_resolved_below_base(self, client):
        assert client.register_url == "https://controller.example.com/api/v1/register"
        assert client.heartbeat_url == "https://controller.example.com/api/v1/heartbeat"

    def test_trailing_slash_on_base(self, mock_session):
        client = ControllerClient("https://controller.example.com/", mock_session)

        assert client.register_url == "https://controller.example.com/register"

    @pytest.mark.parametrize("timeout", [0, -1, math.inf, math.nan, None])
    def test_timeout_must_be_finite_positive(self, controller_url, mock_session, timeout):
        with pytest.raises(InvalidSettingsError):
            ControllerClient(controller_url, mock_session, timeout=timeout)


class TestRegister:

    def test_success(self, client, mock_session, identity):
        mock_session.post.return_value = make_response(
            200, {"heartBeatIntervalMinutes": 3, "verificationRules": {"a": 1}}
        )

        resp = client.register(RegistrationRequest.from_identity(identity))

        assert resp.heart_beat_interval_minutes == 3
        assert resp.verification_rules == {"a": 1}

    def test_single_round_trip(self, client, mock_session, identity):
        mock_session.post.return_value = make_response(200, {})

        client.register(RegistrationRequest.from_identity(identity))

        mock_session.post.assert_called_once()
        call = mock_session.post.call_args
        assert call.args[0] == client.register_url
        assert call.kwargs["timeout"] == 3.0
        assert call.kwargs["headers"]["Content-Type"] == "application/json"
        assert posted_json(call)["ipAddress"] == "10.1.2.3"

    @pytest.mark.parametrize("status", [201, 204, 400, 401, 500, 503])
    def test_non_200_is_failure(self, client, mock_session, identity, status):
        mock_session.post.return_value = make_response(status, {})

        with pytest.raises(RegistrationAttemptError) as exc_info:
            client.register(RegistrationRequest.from_identity(identity))

        assert exc_info.value.status_code == status
        mock_session.post.assert_called_once()

    def test_transport_error_is_failure(self, client, mock_session, identity):
        mock_session.post.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(RegistrationAttemptError) as exc_info:
            client.register(RegistrationRequest.from_identity(identity))

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, requests.ConnectionError)

    def test_decode_error_is_failure(self, client, mock_session, identity):
        mock_session.post.return_value = make_response(200, "<html>oops</html>")

        with pytest.raises(RegistrationAttemptError):
            client.register(RegistrationRequest.from_identity(identity))

    def test_response_closed(self, client, mock_session, identity):
        resp = make_response(500)
        mock_session.post.return_value = resp

        with pytest.raises(RegistrationAttemptError):
            client.register(RegistrationRequest.from_identity(identity))

        resp.close.assert_called_once()


class TestHeartbeat:

    def test_success(self, client, mock_session, identity):
        mock_session.post.return_value = make_response(200)

        client.heartbeat(HeartbeatRequest.from_identity(identity, "v7"))

        call = mock_session.post.call_args
        assert call.args[0] == client.heartbeat_url
        assert posted_json(call)["rulesVersionId"] == "v7"

    def test_non_200_is_failure(self, client, mock_session, identity):
        mock_session.post.return_value = make_response(502)

        with pytest.raises(HeartbeatError) as exc_info:
            client.heartbeat(HeartbeatRequest.from_identity(identity, "v7"))

        assert exc_info.value.status_code == 502

    def test_timeout_is_failure(self, client, mock_session, identity):
        mock_session.post.side_effect = requests.Timeout("read timed out")

        with pytest.raises(HeartbeatError):
            client.heartbeat(HeartbeatRequest.from_identity(identity, "v7"))
