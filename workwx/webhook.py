"""Client for group-chat robots driven by a webhook key."""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping
from urllib.parse import urlencode, urlsplit, urlunsplit

MENTION_ALL = "@all"

_SEND_PATH = "/cgi-bin/webhook/send"

_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}

Poster = Callable[[str, str, bytes], bytes]


@dataclass
class Mentions:
    """Who to notify in a group message; MENTION_ALL notifies everyone."""

    user_ids: list[str] = field(default_factory=list)
    mobiles: list[str] = field(default_factory=list)


def _http_post(url: str, content_type: str, body: bytes) -> bytes:
    request = urllib.request.Request(
        url, data=body, headers={"Content-Type": content_type}, method="POST"
    )
    try:
        with urllib.request.urlopen(request) as response:
            return response.read()
    except urllib.error.HTTPError as exc:
        with exc:
            return exc.read()


def _encode_json(payload: Any) -> bytes:
    text = json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    for raw, escaped in _JSON_ESCAPES.items():
        text = text.replace(raw, escaped)
    return text.encode("utf-8")


class WebhookClient:
    """Sends messages through a group robot identified by its webhook key."""

    def __init__(
        self,
        key: str,
        qyapi_host: str,
        post: Poster | None = None,
    ) -> None:
        self._key = key
        self._qyapi_host = qyapi_host
        self._post = post or _http_post

    @property
    def key(self) -> str:
        """The webhook key this client uses."""
        return self._key

    def compose_url(self, path: str, params: Mapping[str, str] | None = None) -> str:
        """Build the full URL for an API path, with the webhook key in the query."""
        try:
            base = urlsplit(self._qyapi_host)
        except ValueError as exc:
            raise ValueError(f"qyapiHost invalid: host={self._qyapi_host} err={exc}") from exc
        values = dict(params or {})
        values["key"] = self._key
        query = urlencode(sorted(values.items()))
        return urlunsplit((base.scheme, base.netloc, path, query, ""))

    def _post_json(self, path: str, payload: Mapping[str, Any]) -> bytes:
        url = self.compose_url(path)
        return self._post(url, "application/json", _encode_json(payload))

    def _send_message(self, msgtype: str, content: Mapping[str, Any]) -> None:
        self._post_json(_SEND_PATH, {"msgtype": msgtype, msgtype: content})

    def send_text_message(self, content: str, mentions: Mentions | None = None) -> None:
        """Send a text message, optionally notifying members."""
        params: dict[str, Any] = {"content": content}
        if mentions is not None:
            if mentions.user_ids:
                params["mentioned_list"] = list(mentions.user_ids)
            if mentions.mobiles:
                params["mentioned_mobile_list"] = list(mentions.mobiles)
        self._send_message("text", params)

    def send_markdown_message(self, content: str) -> None:
        """Send a Markdown message; mention members with <@userid> in the text."""
        self._send_message("markdown", {"content": content})