import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock, patch
from api_service.src.main import app
from domain.models import AnswerContract, AssistantResponse, Intent
from shared_utils.constants import APIEndpoints
from shared_utils.error_handler import ValidationError

client = TestClient(app)


@pytest.fixture
def mock_container():
    container = MagicMock()
    container.get_event_deduplicator.return_value.is_duplicate.return_value = False
    container.get_assistant_service.return_value.answer = AsyncMock(
        return_value=AssistantResponse(
            answer="Pricing is per store per month.",
            intent=Intent.SINGLE_MEETING,
            data_source="single_meeting",
            confidence=0.85,
            contract=AnswerContract.EXTRACTIVE_FACT,
            contracts=[AnswerContract.EXTRACTIVE_FACT],
        )
    )
    with patch('api_service.src.main.get_di_container', return_value=container):
        yield container


def test_health_check():
    response = client.get(APIEndpoints.HEALTH)
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_ask_success(mock_container):
    response = client.post(APIEndpoints.ASK, json={
        "question": "What did Les Schwab say about pricing?",
        "meetingId": "t-les-1",
        "threadContext": [
            {"text": "Hi", "isBot": False},
            {"text": "How can I help?", "isBot": True},
        ],
    })

    assert response.status_code == 200
    body = response.json()
    assert body["answer"] == "Pricing is per store per month."
    assert body["dataSource"] == "single_meeting"
    assert body["contracts"] == ["EXTRACTIVE_FACT"]
    assert "promptVersions" not in body

    answer = mock_container.get_assistant_service.return_value.answer
    kwargs = answer.await_args.kwargs
    assert answer.await_args.args[0] == "What did Les Schwab say about pricing?"
    assert kwargs["meeting_id"] == "t-les-1"
    assert [m.is_bot for m in kwargs["thread_context"]] == [False, True]


def test_ask_duplicate_event(mock_container):
    mock_container.get_event_deduplicator.return_value.is_duplicate.return_value = True

    response = client.post(APIEndpoints.ASK, json={"question": "Hello?", "eventId": "Ev01"})

    assert response.status_code == 200
    assert response.json() == {"duplicate": True}
    mock_container.get_assistant_service.return_value.answer.assert_not_awaited()


def test_ask_validation_error(mock_container):
    mock_container.get_assistant_service.return_value.answer.side_effect = ValidationError(
        "question cannot be empty"
    )

    response = client.post(APIEndpoints.ASK, json={"question": ""})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_INPUT"


@pytest.mark.parametrize("body, message", [
    ({"question": "Hi", "meetingIds": "t-les-1"}, "meetingIds must be a list"),
    ({"question": "Hi", "threadContext": "earlier"}, "threadContext must be a list"),
])
def test_ask_malformed_body(mock_container, body, message):
    response = client.post(APIEndpoints.ASK, json=body)

    assert response.status_code == 400
    assert response.json()["error"]["message"] == message


def test_ask_unexpected_error(mock_container):
    mock_container.get_assistant_service.return_value.answer.side_effect = RuntimeError("boom")

    response = client.post(APIEndpoints.ASK, json={"question": "Hi"})

    assert response.status_code == 500
    assert "boom" in response.json()["error"]["message"]
