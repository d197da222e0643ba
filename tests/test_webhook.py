import json
from urllib.parse import parse_qs, urlsplit

from workwx.webhook import MENTION_ALL, Mentions, WebhookClient

HOST = "https://example.com"


class _Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, url, content_type, body):
        self.calls.append((url, content_type, body))
        return b'{"errcode":0}'


def _client():
    recorder = _Recorder()
    return WebhookClient(key="placeholder", qyapi_host=HOST, post=recorder), recorder


def test_key_property():
    client, _ = _client()
    assert client.key == "placeholder"


def test_compose_url_adds_key():
    client, _ = _client()
    url = client.compose_url("/cgi-bin/webhook/send")
    assert url == "https://example.com/cgi-bin/webhook/send?key=placeholder"


def test_compose_url_overrides_key_and_keeps_params():
    client, _ = _client()
    url = client.compose_url("/a/b", {"key": "other", "type": "file"})
    parts = urlsplit(url)
    assert parts.path == "/a/b"
    assert parse_qs(parts.query) == {"key": ["placeholder"], "type": ["file"]}


def test_send_text_without_mentions():
    client, recorder = _client()
    client.send_text_message("hello")
    assert len(recorder.calls) == 1
    url, content_type, body = recorder.calls[0]
    assert urlsplit(url).path == "/cgi-bin/webhook/send"
    assert content_type == "application/json"
    assert json.loads(body) == {"msgtype": "text", "text": {"content": "hello"}}


def test_send_text_with_mentions():
    client, recorder = _client()
    client.send_text_message("hi", Mentions(user_ids=["zhangsan", MENTION_ALL], mobiles=[]))
    payload = json.loads(recorder.calls[0][2])
    assert payload["text"] == {"content": "hi", "mentioned_list": ["zhangsan", "@all"]}
    assert "mentioned_mobile_list" not in payload["text"]


def test_send_text_with_mobile_mentions():
    client, recorder = _client()
    client.send_text_message("hi", Mentions(mobiles=[MENTION_ALL]))
    payload = json.loads(recorder.calls[0][2])
    assert payload["text"]["mentioned_mobile_list"] == [MENTION_ALL]
    assert "mentioned_list" not in payload["text"]


def test_send_markdown_escapes_html_characters():
    client, recorder = _client()
    client.send_markdown_message("<@zhangsan> & 你好")
    body = recorder.calls[0][2]
    assert b"<" not in body and b">" not in body and b"&" not in body
    assert json.loads(body) == {
        "msgtype": "markdown",
        "markdown": {"content": "<@zhangsan> & 你好"},
    }


def test_body_keys_are_sorted():
    client, recorder = _client()
    client.send_text_message("x", Mentions(user_ids=["a"], mobiles=["b"]))
    body = recorder.calls[0][2].decode("utf-8")
    assert body.index('"content"') < body.index('"mentioned_list"') < body.index(
        '"mentioned_mobile_list"'
    )
    assert body.index('"msgtype"') < body.index('"text"')