from unittest.mock import patch

import httpx
import pytest

from assetgate.services.task_queue.tasks.email_tasks import deliver_email, send_email_task

MESSAGE = {
    "from": "MoonUI <no-reply@moonui.design>",
    "to": "jane@example.com",
    "subject": "Hello",
    "html": "<p>Hi</p>",
}


def make_client(status_code: int, seen: list[httpx.Request]) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status_code, json={"id": "email-1"})

    return httpx.Client(base_url="https://api.resend.test", transport=httpx.MockTransport(handler))


class TestDeliverEmail:
    """Test delivery of rendered messages to Resend."""

    def test_accepted_message(self):
        seen: list[httpx.Request] = []

        with make_client(200, seen) as client:
            assert deliver_email(MESSAGE, client=client) is True

        assert seen[0].url.path == "/emails"
        assert seen[0].headers["Authorization"].startswith("Bearer ")

    @pytest.mark.parametrize("status_code", [400, 422, 500])
    def test_rejected_message(self, status_code):
        with make_client(status_code, []) as client:
            assert deliver_email(MESSAGE, client=client) is False

    def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        client = httpx.Client(
            base_url="https://api.resend.test", transport=httpx.MockTransport(handler)
        )

        assert deliver_email(MESSAGE, client=client) is False

    def test_given_client_is_not_closed(self):
        with make_client(200, []) as client:
            deliver_email(MESSAGE, client=client)

            assert client.is_closed is False


class TestSendEmailTask:
    def test_task_delivers_message(self):
        with patch(
            "assetgate.services.task_queue.tasks.email_tasks.deliver_email", return_value=True
        ) as deliver:
            assert send_email_task.apply(args=[MESSAGE]).get() is True

        deliver.assert_called_once_with(MESSAGE)
