# workwx

Small building blocks for working with Enterprise WeChat (WeCom):

- parse the XML messages and events that WeCom posts to an app's callback URL
  (`workwx.rx_msg`, `workwx.rx_models`);
- cache a token (access token, JSAPI ticket, ...) and keep it fresh in a
  background thread (`workwx.token`);
- member information records and helpers to normalise them (`workwx.user_info`);
- post text and Markdown messages to a group robot webhook (`workwx.webhook`).

The package has no runtime dependencies beyond the standard library.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Parsing callback messages

`from_envelope` takes the already decrypted XML body of a callback (bytes or
str) and returns a frozen `RxMessage`. Its common fields are attributes:
`from_user_id`, `send_time` (an aware `datetime` in the local timezone),
`msg_type` (a `MessageType`), `msg_id`, `agent_id`, `event` and `change_type`
(an `EventType` / `ChangeType` member when the value is known, otherwise the
plain string), and `extras`, the type-specific payload.

The payload can be read through accessors, each of which returns `None` when
the message is of another kind: `text()`, `image()`, `voice()`, `video()`,
`location()`, `link()`, `event_add_external_contact()`,
`event_edit_external_contact()`, `event_del_external_contact()`,
`event_del_follow_user()`, `event_add_half_external_contact()`,
`event_transfer_fail()`, `event_change_external_chat()`,
`event_sys_approval_change()`, `event_change_type_update_user()`,
`event_change_type_create_user()`, `event_app_menu_click()`,
`event_app_menu_view()`, `event_app_subscribe()`, `event_app_unsubscribe()`
and `event_unknown()`.

```python
from workwx.rx_msg import from_envelope, RxParseError
from workwx.rx_models import MessageType

body = (
    b"<xml><FromUserName><![CDATA[foobar]]></FromUserName>"
    b"<CreateTime>1583995625</CreateTime><MsgType><![CDATA[text]]></MsgType>"
    b"<Content><![CDATA[hello]]></Content><MsgId>1</MsgId><AgentID>1000002</AgentID></xml>"
)

msg = from_envelope(body)
assert msg.msg_type == MessageType.TEXT
text = msg.text()
if text is not None:
    print(msg.from_user_id, text.content)
print(msg)  # RxMessage { FromUserID: "foobar", SendTime: ..., Content: "hello" }
```

`RxParseError` (a `ValueError`) is raised for malformed XML, for numeric
fields that do not hold numbers, for messages of an unknown type, and for
`change_external_contact` or `change_contact` events with an unknown change
type. Events of any other type without a dedicated model come back as
`EventUnknown`, which keeps the event type and the raw body.

The payload classes live in `workwx.rx_models`; each is a frozen dataclass
subclassing `MessageExtras`, built with `MessageExtras.from_element(root)` and
rendered on one line with `describe()`. `extract_message_extras` in
`workwx.rx_msg` picks and parses the payload for a given message type, event
and change type. Approval information of `EventSysApprovalChange` is kept as a
nested dict/list/str tree of the `<ApprovalInfo>` element.

## Tokens

`Token` wraps a callable that returns a fresh `TokenInfo(token, expires_in)`
(`expires_in` in seconds).

- `get()` returns the cached token, fetching it on first use; if that fetch
  fails the error is swallowed and an empty string is returned.
- `sync()` fetches and stores a fresh token, letting errors propagate.
- `run_refresher(stop_event)` loops until the `threading.Event` is set,
  refreshing about 30 minutes before expiry (and never more often than every
  5 seconds), retrying failed fetches with randomised exponential backoff.
- `spawn_refresher(stop_event)` runs that loop in a daemon thread and returns
  the thread.

```python
import threading
from workwx.token import Token, TokenInfo

def fetch():
    # call the token endpoint of your choice here
    return TokenInfo(token="token", expires_in=7200)

access_token = Token(fetch)
stop = threading.Event()
access_token.spawn_refresher(stop)
print(access_token.get())
stop.set()
```

## User info

`workwx.user_info` holds the frozen dataclasses `UserInfo`, `UserDeptInfo`
and `UserIdentityInfo` (with `UserIdentityInfo.from_dict` for a decoded
response object using the `UserId`, `OpenId` and `DeviceId` keys), and the
`UserGender` and `UserStatus` enums.

- `reshape_dept_info(ids, orders, leader_statuses)` zips parallel department
  arrays into `UserDeptInfo` records. It raises `ValueError` when the lengths
  disagree; an empty `leader_statuses` marks nobody as leader.
- `user_gender_from_str(value)` parses a gender string: empty means
  `UserGender.UNSPECIFIED`, numbers without a matching member are returned as
  plain ints, anything else raises `ValueError`.

## Group robot webhooks

`WebhookClient(key, qyapi_host, post=None)` posts JSON to
`<qyapi_host>/cgi-bin/webhook/send?key=<key>`. By default it uses
`urllib.request`; any callable `post(url, content_type, body) -> bytes` can be
passed instead, which is handy for tests or proxies. The response body is not
inspected.

```python
from workwx.webhook import MENTION_ALL, Mentions, WebhookClient

client = WebhookClient("placeholder", "https://qyapi.example.com")
client.send_text_message("build finished", Mentions(user_ids=[MENTION_ALL]))
client.send_markdown_message("**deploy** done <@someone>")
print(client.key, client.compose_url("/cgi-bin/webhook/send"))
```

Markdown messages take no `Mentions`; mention members with `<@userid>` in the
text.

## What is not included

This package has no HTTP client for the WeCom application API: it does not
fetch access tokens, JSAPI tickets or user details itself (you supply the
fetch function to `Token` and build `UserInfo` records yourself), and it does
not decrypt or verify callback payloads or run a callback server. It also has
no command-line tool.