"""Typed payloads of messages and events received from the callback endpoint."""

from __future__ import annotations

import math
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar


class MessageType(str, Enum):
    """Kind of a received message."""

    TEXT = "text"
    IMAGE = "image"
    VOICE = "voice"
    VIDEO = "video"
    LOCATION = "location"
    LINK = "link"
    EVENT = "event"


class EventType(str, Enum):
    """Kind of event carried by an event message."""

    CHANGE_EXTERNAL_CONTACT = "change_external_contact"
    CHANGE_EXTERNAL_CHAT = "change_external_chat"
    SYS_APPROVAL_CHANGE = "sys_approval_change"
    CHANGE_CONTACT = "change_contact"
    APP_MENU_CLICK = "click"
    APP_MENU_VIEW = "view"
    APP_MENU_SCAN_CODE_PUSH = "scancode_push"
    APP_MENU_SCAN_CODE_WAIT_MSG = "scancode_waitmsg"
    APP_MENU_PIC_SYS_PHOTO = "pic_sysphoto"
    APP_MENU_PIC_PHOTO_OR_ALBUM = "pic_photo_or_album"
    APP_MENU_PIC_WEIXIN = "pic_weixin"
    APP_MENU_LOCATION_SELECT = "location_select"
    APP_SUBSCRIBE = "subscribe"
    APP_UNSUBSCRIBE = "unsubscribe"


class ChangeType(str, Enum):
    """Kind of change reported by a change event."""

    ADD_EXTERNAL_CONTACT = "add_external_contact"
    EDIT_EXTERNAL_CONTACT = "edit_external_contact"
    ADD_HALF_EXTERNAL_CONTACT = "add_half_external_contact"
    DEL_EXTERNAL_CONTACT = "del_external_contact"
    DEL_FOLLOW_USER = "del_follow_user"
    TRANSFER_FAIL = "transfer_fail"
    CREATE_USER = "create_user"
    UPDATE_USER = "update_user"


# ---------------------------------------------------------------------------
# value formatting in the style used by message descriptions

_INT_RE = re.compile(r"[+-]?[0-9]+\Z")

_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    '"': '\\"',
    "\\": "\\\\",
}


def _quote(text: str) -> str:
    out = []
    for ch in text:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ch.isprintable():
            out.append(ch)
        else:
            code = ord(ch)
            if code < 0x80:
                out.append(f"\\x{code:02x}")
            elif code < 0x10000:
                out.append(f"\\u{code:04x}")
            else:
                out.append(f"\\U{code:08x}")
    return '"' + "".join(out) + '"'


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    sign, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    raw = "".join(map(str, digit_tuple))
    digits = raw.rstrip("0")
    exponent += len(raw) - len(digits)
    count = len(digits)
    point = count + exponent
    exp = point - 1
    prefix = "-" if sign else ""

    if exp < -4 or exp >= 6:
        mantissa = digits[0] + ("." + digits[1:] if count > 1 else "")
        exp_sign = "-" if exp < 0 else "+"
        return f"{prefix}{mantissa}e{exp_sign}{abs(exp):02d}"
    if point <= 0:
        return f"{prefix}0.{'0' * -point}{digits}"
    if point >= count:
        return f"{prefix}{digits}{'0' * (point - count)}"
    return f"{prefix}{digits[:point]}.{digits[point:]}"


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    return repr(value)


# ---------------------------------------------------------------------------
# XML field extraction

def _direct_text(elem: ET.Element) -> str:
    return (elem.text or "") + "".join(child.tail or "" for child in elem)


def _element_tree(elem: ET.Element) -> Any:
    children = list(elem)
    if not children:
        return elem.text or ""
    result: dict[str, Any] = {}
    for child in children:
        value = _element_tree(child)
        if child.tag in result:
            existing = result[child.tag]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[child.tag] = [existing, value]
        else:
            result[child.tag] = value
    return result


def _parse_int(text: str, tag: str) -> int:
    text = text.strip()
    if not text:
        return 0
    if not _INT_RE.match(text):
        raise ValueError(f"invalid integer in <{tag}>: {text!r}")
    return int(text)


def _parse_float(text: str, tag: str) -> float:
    text = text.strip()
    if not text:
        return 0.0
    if "_" in text:
        raise ValueError(f"invalid number in <{tag}>: {text!r}")
    try:
        return float(text)
    except ValueError:
        raise ValueError(f"invalid number in <{tag}>: {text!r}") from None


def _xml(tag: str, default: Any = "", kind: str | None = None) -> Any:
    if kind is None:
        kind = type(default).__name__
    return field(default=default, metadata={"xml": tag, "kind": kind})


@dataclass(frozen=True)
class MessageExtras:
    """Base of the type-specific part of a received message."""

    _described: ClassVar[tuple[tuple[str, str], ...]] = ()

    @classmethod
    def from_element(cls, root: ET.Element) -> MessageExtras:
        """Build the payload from the direct children of an XML envelope."""
        values: dict[str, Any] = {}
        for f in fields(cls):
            tag = f.metadata.get("xml")
            if tag is None:
                continue
            matches = root.findall(tag)
            if not matches:
                continue
            elem = matches[-1]
            kind = f.metadata["kind"]
            if kind == "int":
                values[f.name] = _parse_int(_direct_text(elem), tag)
            elif kind == "float":
                values[f.name] = _parse_float(_direct_text(elem), tag)
            elif kind == "tree":
                values[f.name] = _element_tree(elem)
            else:
                values[f.name] = _direct_text(elem)
        return cls(**values)

    def describe(self) -> str:
        """Render the payload fields as a one-line description."""
        return ", ".join(
            f"{label}: {_format_value(getattr(self, attr))}"
            for label, attr in self._described
        )

    def _struct_dump(self) -> str:
        parts = ", ".join(
            f"{f.metadata['xml']}:{_format_value(getattr(self, f.name))}"
            for f in fields(self)
            if "xml" in f.metadata
        )
        return f"{type(self).__name__}{{{parts}}}"


@dataclass(frozen=True)
class TextMessageExtras(MessageExtras):
    """Text message payload."""

    content: str = _xml("Content")

    _described = (("Content", "content"),)


@dataclass(frozen=True)
class ImageMessageExtras(MessageExtras):
    """Image message payload."""

    pic_url: str = _xml("PicUrl")
    media_id: str = _xml("MediaId")

    _described = (("PicURL", "pic_url"), ("MediaID", "media_id"))


@dataclass(frozen=True)
class VoiceMessageExtras(MessageExtras):
    """Voice message payload."""

    media_id: str = _xml("MediaId")
    format: str = _xml("Format")

    _described = (("MediaID", "media_id"), ("Format", "format"))


@dataclass(frozen=True)
class VideoMessageExtras(MessageExtras):
    """Video message payload."""

    media_id: str = _xml("MediaId")
    thumb_media_id: str = _xml("ThumbMediaId")

    _described = (("MediaID", "media_id"), ("ThumbMediaID", "thumb_media_id"))


@dataclass(frozen=True)
class LocationMessageExtras(MessageExtras):
    """Location message payload; latitude north-positive, longitude east-positive."""

    latitude: float = _xml("Location_X", 0.0)
    longitude: float = _xml("Location_Y", 0.0)
    scale: int = _xml("Scale", 0)
    label: str = _xml("Label")
    app_type: str = _xml("AppType")

    _described = (
        ("Latitude", "latitude"),
        ("Longitude", "longitude"),
        ("Scale", "scale"),
        ("Label", "label"),
    )


@dataclass(frozen=True)
class LinkMessageExtras(MessageExtras):
    """Link message payload."""

    title: str = _xml("Title")
    description: str = _xml("Description")
    url: str = _xml("Url")
    pic_url: str = _xml("PicUrl")

    _described = (
        ("Title", "title"),
        ("Description", "description"),
        ("URL", "url"),
        ("PicURL", "pic_url"),
    )


@dataclass(frozen=True)
class EventAddExternalContact(MessageExtras):
    """An external contact was added."""

    user_id: str = _xml("UserID")
    external_user_id: str = _xml("ExternalUserID")
    state: str = _xml("State")
    welcome_code: str = _xml("WelcomeCode")

    _described = (
        ("UserID", "user_id"),
        ("ExternalUserID", "external_user_id"),
        ("State", "state"),
        ("WelcomeCode", "welcome_code"),
    )


@dataclass(frozen=True)
class EventEditExternalContact(MessageExtras):
    """An external contact was edited."""

    user_id: str = _xml("UserID")
    external_user_id: str = _xml("ExternalUserID")
    state: str = _xml("State")

    _described = (
        ("UserID", "user_id"),
        ("ExternalUserID", "external_user_id"),
        ("State", "state"),
    )


@dataclass(frozen=True)
class EventAddHalfExternalContact(MessageExtras):
    """An external contact added a member without verification."""

    user_id: str = _xml("UserID")
    external_user_id: str = _xml("ExternalUserID")
    state: str = _xml("State")
    welcome_code: str = _xml("WelcomeCode")

    _described = (
        ("UserID", "user_id"),
        ("ExternalUserID", "external_user_id"),
        ("State", "state"),
        ("WelcomeCode", "welcome_code"),
    )


@dataclass(frozen=True)
class EventDelExternalContact(MessageExtras):
    """An external contact was deleted."""

    user_id: str = _xml("UserID")
    external_user_id: str = _xml("ExternalUserID")

    _described = (("UserID", "user_id"), ("ExternalUserID", "external_user_id"))


@dataclass(frozen=True)
class EventDelFollowUser(MessageExtras):
    """A following member was removed by the external contact."""

    user_id: str = _xml("UserID")
    external_user_id: str = _xml("ExternalUserID")

    _described = (("UserID", "user_id"), ("ExternalUserID", "external_user_id"))


@dataclass(frozen=True)
class EventTransferFail(MessageExtras):
    """Handing a customer over to another member failed."""

    fail_reason: str = _xml("FailReason")
    user_id: str = _xml("UserID")
    external_user_id: str = _xml("ExternalUserID")

    _described = (
        ("UserID", "user_id"),
        ("ExternalUserID", "external_user_id"),
        ("FailReason", "fail_reason"),
    )


@dataclass(frozen=True)
class EventChangeExternalChat(MessageExtras):
    """A customer group chat changed."""

    to_user_name: str = _xml("ToUserName")
    from_user_name: str = _xml("FromUserName")
    fail_reason: str = _xml("FailReason")
    chat_id: str = _xml("ChatId")

    _described = (
        ("ChatID", "chat_id"),
        ("ToUserName", "to_user_name"),
        ("FromUserName", "from_user_name"),
        ("FailReason", "fail_reason"),
    )


@dataclass(frozen=True)
class EventSysApprovalChange(MessageExtras):
    """An approval request changed state; the approval info is kept as a tree."""

    approval_info: Any = _xml("ApprovalInfo", "", kind="tree")

    _described = (("ApprovalInfo", "approval_info"),)


@dataclass(frozen=True)
class EventChangeTypeCreateUser(MessageExtras):
    """A member was created."""

    user_id: str = _xml("UserID")
    name: str = _xml("Name")
    department: str = _xml("Department")
    is_leader_in_dept: str = _xml("IsLeaderInDept")
    mobile: str = _xml("Mobile")
    position: str = _xml("Position")
    gender: int = _xml("Gender", 0)
    email: str = _xml("Email")
    status: int = _xml("Status", 0)
    avatar: str = _xml("Avatar")
    alias: str = _xml("Alias")
    telephone: str = _xml("Telephone")
    address: str = _xml("Address")
    ext_attr: str = _xml("ExtAttr")
    type: str = _xml("Type")
    text: str = _xml("Text")
    value: str = _xml("Value")
    web: str = _xml("Web")
    title: str = _xml("Title")
    url: str = _xml("Url")

    def describe(self) -> str:
        return f"CreateUser: {self._struct_dump()}"


@dataclass(frozen=True)
class EventChangeTypeUpdateUser(MessageExtras):
    """A member was updated."""

    user_id: str = _xml("UserID")
    new_user_id: str = _xml("NewUserID")
    name: str = _xml("Name")
    department: str = _xml("Department")
    is_leader_in_dept: str = _xml("IsLeaderInDept")
    mobile: str = _xml("Mobile")
    position: str = _xml("Position")
    gender: int = _xml("Gender", 0)
    email: str = _xml("Email")
    status: int = _xml("Status", 0)
    avatar: str = _xml("Avatar")
    alias: str = _xml("Alias")
    telephone: str = _xml("Telephone")
    address: str = _xml("Address")
    ext_attr: str = _xml("ExtAttr")
    type: str = _xml("Type")
    text: str = _xml("Text")
    value: str = _xml("Value")
    web: str = _xml("Web")
    title: str = _xml("Title")
    url: str = _xml("Url")

    def describe(self) -> str:
        return f"UpdateUser: {self._struct_dump()}"


@dataclass(frozen=True)
class EventAppMenuClick(MessageExtras):
    """An application menu item was clicked."""

    event_key: str = _xml("EventKey")

    _described = (("EventKey", "event_key"),)


@dataclass(frozen=True)
class EventAppMenuView(MessageExtras):
    """An application menu link was opened."""

    event_key: str = _xml("EventKey")

    _described = (("EventKey", "event_key"),)


@dataclass(frozen=True)
class EventAppSubscribe(MessageExtras):
    """A user subscribed to the application."""

    event_key: str = _xml("EventKey")

    _described = (("EventKey", "event_key"),)


@dataclass(frozen=True)
class EventAppUnsubscribe(MessageExtras):
    """A user unsubscribed from the application."""

    event_key: str = _xml("EventKey")

    _described = (("EventKey", "event_key"),)


@dataclass(frozen=True)
class EventUnknown(MessageExtras):
    """An event of a type without a dedicated payload; keeps the raw body."""

    event_type: str = ""
    raw: str = ""

    _described = (("Raw", "raw"),)