import httpx
import pytest
from unittest.mock import patch, MagicMock
from leadform.notify import emailjs_client
from leadform.notify.emailjs_client import NotifierError, build_request_body, send_email
from leadform.settings import settings


@pytest.fixture
def configured():
    with patch.object(settings, "EMAILJS_SERVICE_ID", "svc_1"), \
         patch.object(settings, "EMAILJS_TEMPLATE_ID", "tmpl_1"), \
         patch.object(settings, "EMAILJS_PUBLIC_KEY", "pub_1"), \
         patch.object(settings, "EMAILJS_PRIVATE_KEY", ""):
        yield


def test_request_body_shape(configured):
    body = build_request_body({"to_email": "a@b.com"})
    assert body == {
        "service_id": "svc_1",
        "template_id": "tmpl_1",
        "user_id": "pub_1",
        "template_params": {"to_email": "a@b.com"},
    }


def test_request_body_includes_access_token(configured):
    with patch.object(settings, "EMAILJS_PRIVATE_KEY", "priv"):
        body = build_request_body({}, template_id="tmpl_2")
    assert body["accessToken"] == "priv"
    assert body["template_id"] == "tmpl_2"


@patch("httpx.Client.post")
def test_send_success(mock_post, configured):
    mock_post.return_value = MagicMock(status_code=200, text="OK")
    assert send_email({"to_email": "a@b.com"}) == 200
    args, kwargs = mock_post.call_args
    assert args[0] == settings.EMAILJS_API_URL
    assert kwargs["json"]["service_id"] == "svc_1"


@patch("httpx.Client.post")
def test_send_non_2xx_raises(mock_post, configured):
    mock_post.return_value = MagicMock(status_code=400, text="The template ID is invalid")
    with pytest.raises(NotifierError) as exc:
        send_email({})
    assert exc.value.status_code == 400


@patch("httpx.Client.post")
def test_send_transport_error_raises(mock_post, configured):
    mock_post.side_effect = httpx.ConnectTimeout("timed out")
    with pytest.raises(NotifierError) as exc:
        send_email({})
    assert "ConnectTimeout" in str(exc.value)
    assert exc.value.status_code == 0


@patch("httpx.Client.post")
def test_unconfigured_never_calls_out(mock_post):
    with patch.object(settings, "EMAILJS_SERVICE_ID", ""):
        with pytest.raises(NotifierError):
            send_email({})
    mock_post.assert_not_called()


@patch("leadform.notify.emailjs_client.log")
@patch("httpx.Client.post")
def test_failure_logged(mock_post, mock_log, configured):
    mock_post.return_value = MagicMock(status_code=503, text="busy")
    with pytest.raises(NotifierError):
        emailjs_client.send_email({})
    assert mock_log.call_args.kwargs["event"] == "notify_send_failed"
    assert mock_log.call_args.kwargs["statusCode"] == 503
