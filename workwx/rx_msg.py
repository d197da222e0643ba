"""Parsing of XML envelopes received on the callback endpoint."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TypeVar

from .rx_models import (
    ChangeType,
    EventAddExternalContact,
    EventAddHalfExternalContact,
    EventAppMenuClick,
    EventAppMenuView,
    EventAppSubscribe,
    EventAppUnsubscribe,
    EventChangeExternalChat,
    EventChangeTypeCreateUser,
    EventChangeTypeUpdateUser,
    EventDelExternalContact,
    EventDelFollowUser,
    EventEditExternalContact,
    EventSysApprovalChange,
    EventTransferFail,
    EventType,
    EventUnknown,
    ImageMessageExtras,
    LinkMessageExtras,
    LocationMessageExtras,
    MessageExtras,
    MessageType,
    TextMessageExtras,
    VideoMessageExtras,
    VoiceMessageExtras,
    _format_value,
    _xml,
)

_E = TypeVar("_E", bound=MessageExtras)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class RxParseError(ValueError):
    """Raised when a received envelope cannot be understood."""


@dataclass(frozen=True)
class _Common(MessageExtras):
    to_user_name: str = _xml("ToUserName")
    from_user_name: str = _xml("FromUserName")
    create_time: int = _xml("CreateTime", 0)
    msg_type: str = _xml("MsgType")
    msg_id: int = _xml("MsgId", 0)
    agent_id: int = _xml("AgentID", 0)
    event: str = _xml("Event")
    change_type: str = _xml("ChangeType")


_MESSAGE_KINDS: dict[str, type[MessageExtras]] = {
    MessageType.TEXT.value: TextMessageExtras,
    MessageType.IMAGE.value: ImageMessageExtras,
    MessageType.VOICE.value: VoiceMessageExtras,
    MessageType.VIDEO.value: VideoMessageExtras,
    MessageType.LOCATION.value: LocationMessageExtras,
    MessageType.LINK.value: LinkMessageExtras,
}

_EVENT_KINDS: dict[str, type[MessageExtras]] = {
    EventType.SYS_APPROVAL_CHANGE.value: EventSysApprovalChange,
    EventType.CHANGE_EXTERNAL_CHAT.value: EventChangeExternalChat,
    EventType.APP_MENU_CLICK.value: EventAppMenuClick,
    EventType.APP_MENU_VIEW.value: EventAppMenuView,
}

_CHANGE_KINDS: dict[str, dict[str, type[MessageExtras]]] = {
    EventType.CHANGE_EXTERNAL_CONTACT.value: {
        ChangeType.ADD_EXTERNAL_CONTACT.value: EventAddExternalContact,
        ChangeType.EDIT_EXTERNAL_CONTACT.value: EventEditExternalContact,
        ChangeType.DEL_EXTERNAL_CONTACT.value: EventDelExternalContact,
        ChangeType.DEL_FOLLOW_USER.value: EventDelFollowUser,
        ChangeType.ADD_HALF_EXTERNAL_CONTACT.value: EventAddHalfExternalContact,
        ChangeType.TRANSFER_FAIL.value: EventTransferFail,
        ChangeType.CREATE_USER.value: EventChangeTypeCreateUser,
        ChangeType.UPDATE_USER.value: EventChangeTypeUpdateUser,
    },
    EventType.CHANGE_CONTACT.value: {
        ChangeType.UPDATE_USER.value: EventChangeTypeUpdateUser,
        ChangeType.CREATE_USER.value: EventChangeTypeCreateUser,
    },
}


def _plain(value: str | Enum) -> str:
    return value.value if isinstance(value, Enum) else value


def _coerce(enum_cls: type[Enum], value: str) -> Enum | str:
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _body_text(body: bytes | str) -> str:
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


def extract_message_extras(
    msg_type: str | MessageType,
    event: str | EventType,
    change_type: str | ChangeType,
    root: ET.Element,
    body: bytes | str,
) -> MessageExtras:
    """Pick and parse the type-specific payload of an envelope."""
    msg_type = _plain(msg_type)
    event = _plain(event)
    change_type = _plain(change_type)

    if msg_type == MessageType.EVENT.value:
        if event in _CHANGE_KINDS:
            kind = _CHANGE_KINDS[event].get(change_type)
            if kind is None:
                raise RxParseError(f"unknown change type '{change_type}'")
        else:
            kind = _EVENT_KINDS.get(event)
            if kind is None:
                return EventUnknown(event_type=event, raw=_body_text(body))
    else:
        kind = _MESSAGE_KINDS.get(msg_type)
        if kind is None:
            raise RxParseError(f"unknown message type '{msg_type}'")

    try:
        return kind.from_element(root)
    except ValueError as exc:
        raise RxParseError(str(exc)) from exc


@dataclass(frozen=True)
class RxMessage:
    """A message received from the callback endpoint."""

    from_user_id: str
    send_time: datetime
    msg_type: MessageType
    msg_id: int
    agent_id: int
    event: EventType | str
    change_type: ChangeType | str
    extras: MessageExtras

    def __str__(self) -> str:
        nanos = (self.send_time - _EPOCH) // timedelta(microseconds=1) * 1000
        head = ", ".join(
            [
                f"FromUserID: {_format_value(self.from_user_id)}",
                f"SendTime: {nanos}",
                f"MsgType: {_format_value(_plain(self.msg_type))}",
                f"MsgID: {self.msg_id}",
                f"AgentID: {self.agent_id}",
                f"Event: {_format_value(_plain(self.event))}",
                f"ChangeType: {_format_value(_plain(self.change_type))}",
            ]
        )
        return f"RxMessage {{ {head}, {self.extras.describe()} }}"

    def _as(self, cls: type[_E]) -> _E | None:
        return self.extras if isinstance(self.extras, cls) else None

    def text(self) -> TextMessageExtras | None:
        """Payload of a text message, else None."""
        return self._as(TextMessageExtras)

    def image(self) -> ImageMessageExtras | None:
        """Payload of an image message, else None."""
        return self._as(ImageMessageExtras)

    def voice(self) -> VoiceMessageExtras | None:
        """Payload of a voice message, else None."""
        return self._as(VoiceMessageExtras)

    def video(self) -> VideoMessageExtras | None:
        """Payload of a video message, else None."""
        return self._as(VideoMessageExtras)

    def location(self) -> LocationMessageExtras | None:
        """Payload of a location message, else None."""
        return self._as(LocationMessageExtras)

    def link(self) -> LinkMessageExtras | None:
        """Payload of a link message, else None."""
        return self._as(LinkMessageExtras)

    def event_add_external_contact(self) -> EventAddExternalContact | None:
        """Payload of an add-external-contact event, else None."""
        return self._as(EventAddExternalContact)

    def event_edit_external_contact(self) -> EventEditExternalContact | None:
        """Payload of an edit-external-contact event, else None."""
        return self._as(EventEditExternalContact)

    def event_del_external_contact(self) -> EventDelExternalContact | None:
        """Payload of a delete-external-contact event, else None."""
        return self._as(EventDelExternalContact)

    def event_del_follow_user(self) -> EventDelFollowUser | None:
        """Payload of a delete-follow-user event, else None."""
        return self._as(EventDelFollowUser)

    def event_add_half_external_contact(self) -> EventAddHalfExternalContact | None:
        """Payload of an add-half-external-contact event, else None."""
        return self._as(EventAddHalfExternalContact)

    def event_transfer_fail(self) -> EventTransferFail | None:
        """Payload of a transfer-fail event, else None."""
        return self._as(EventTransferFail)

    def event_change_external_chat(self) -> EventChangeExternalChat | None:
        """Payload of a customer group change event, else None."""
        return self._as(EventChangeExternalChat)

    def event_sys_approval_change(self) -> EventSysApprovalChange | None:
        """Payload of an approval state change event, else None."""
        return self._as(EventSysApprovalChange)

    def event_change_type_update_user(self) -> EventChangeTypeUpdateUser | None:
        """Payload of an update-member event, else None."""
        return self._as(EventChangeTypeUpdateUser)

    def event_change_type_create_user(self) -> EventChangeTypeCreateUser | None:
        """Payload of a create-member event, else None."""
        return self._as(EventChangeTypeCreateUser)

    def event_app_menu_click(self) -> EventAppMenuClick | None:
        """Payload of a menu click event, else None."""
        return self._as(EventAppMenuClick)

    def event_app_menu_view(self) -> EventAppMenuView | None:
        """Payload of a menu link event, else None."""
        return self._as(EventAppMenuView)

    def event_app_subscribe(self) -> EventAppSubscribe | None:
        """Payload of a subscribe event, else None."""
        return self._as(EventAppSubscribe)

    def event_app_unsubscribe(self) -> EventAppUnsubscribe | None:
        """Payload of an unsubscribe event, else None."""
        return self._as(EventAppUnsubscribe)

    def event_unknown(self) -> EventUnknown | None:
        """Payload of an event without a dedicated type, else None."""
        return self._as(EventUnknown)


def from_envelope(body: bytes | str) -> RxMessage:
    """Parse a decrypted XML envelope into an RxMessage."""
    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise RxParseError(f"malformed XML: {exc}") from exc

    try:
        common = _Common.from_element(root)
    except ValueError as exc:
        raise RxParseError(str(exc)) from exc

    extras = extract_message_extras(
        common.msg_type, common.event, common.change_type, root, body
    )

    send_time = datetime.fromtimestamp(common.create_time, tz=timezone.utc).astimezone()

    return RxMessage(
        from_user_id=common.from_user_name,
        send_time=send_time,
        msg_type=MessageType(common.msg_type),
        msg_id=common.msg_id,
        agent_id=common.agent_id,
        event=_coerce(EventType, common.event),
        change_type=_coerce(ChangeType, common.change_type),
        extras=extras,
    )