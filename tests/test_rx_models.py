import xml.etree.ElementTree as ET

import pytest

from workwx.rx_models import (
    ChangeType,
    EventAppMenuClick,
    EventChangeTypeCreateUser,
    EventChangeTypeUpdateUser,
    EventEditExternalContact,
    EventSysApprovalChange,
    EventType,
    EventUnknown,
    ImageMessageExtras,
    LocationMessageExtras,
    MessageType,
    TextMessageExtras,
    VoiceMessageExtras,
)

TEXT_BODY = (
    "<xml><ToUserName><![CDATA[ww6a112864f8022910]]></ToUserName>"
    "<FromUserName><![CDATA[foobar]]></FromUserName><CreateTime>1583995625</CreateTime>"
    "<MsgType><![CDATA[text]]></MsgType><Content><![CDATA[x123]]></Content>"
    "<MsgId>2018405441</MsgId><AgentID>1000002</AgentID></xml>"
)

EDIT_BODY = (
    "<xml><ToUserName><![CDATA[toUser]]></ToUserName><FromUserName><![CDATA[sys]]></FromUserName> "
    "<CreateTime>1403610513</CreateTime><MsgType><![CDATA[event]]></MsgType>"
    "<Event><![CDATA[change_external_contact]]></Event>"
    "<ChangeType><![CDATA[edit_external_contact]]></ChangeType>"
    "<UserID><![CDATA[zhangsan]]></UserID>"
    "<ExternalUserID><![CDATA[woAJ2GCAAAXtWyujaWJHDDGi0mAAAA]]></ExternalUserID>"
    "<State><![CDATA[teststate]]></State></xml>"
)

UPDATE_BODY = (
    " <xml><ToUserName><![CDATA[toUser]]></ToUserName><FromUserName><![CDATA[sys]]></FromUserName> "
    "<CreateTime>1403610513</CreateTime><MsgType><![CDATA[event]]></MsgType>"
    "<Event><![CDATA[change_contact]]></Event><ChangeType>update_user</ChangeType>"
    "<UserID><![CDATA[zhangsan]]></UserID><NewUserID><![CDATA[zhangsan001]]></NewUserID>"
    "<Name><![CDATA[张三]]></Name><Department><![CDATA[1,2,3]]></Department>"
    "<MainDepartment>1</MainDepartment><IsLeaderInDept><![CDATA[1,0,0]]></IsLeaderInDept>"
    "<Position><![CDATA[产品经理]]></Position><Gender>1</Gender><Status>1</Status>"
    "<Alias><![CDATA[zhangsan]]></Alias><Address><![CDATA[广州市]]></Address>"
    "<ExtAttr><Item><Name><![CDATA[爱好]]></Name><Type>0</Type><Text><Value><![CDATA[旅游]]></Value>"
    "</Text></Item><Item><Name><![CDATA[卡号]]></Name><Type>1</Type><Web><Title><![CDATA[企业微信]]></Title>"
    "<Url><![CDATA[https://work.weixin.qq.com]]></Url></Web></Item></ExtAttr></xml>"
).strip()


def parse(text):
    return ET.fromstring(text)


def test_enum_values_match_wire_strings():
    assert MessageType("text") is MessageType.TEXT
    assert MessageType("event") is MessageType.EVENT
    assert EventType("change_contact") is EventType.CHANGE_CONTACT
    assert EventType("click") is EventType.APP_MENU_CLICK
    assert ChangeType("update_user") is ChangeType.UPDATE_USER
    assert ChangeType.TRANSFER_FAIL.value == "transfer_fail"


def test_unknown_message_type_rejected():
    with pytest.raises(ValueError):
        MessageType("sticker")


def test_text_from_element():
    extras = TextMessageExtras.from_element(parse(TEXT_BODY))
    assert extras.content == "x123"
    assert extras.describe() == 'Content: "x123"'


def test_edit_external_contact_from_element():
    extras = EventEditExternalContact.from_element(parse(EDIT_BODY))
    assert extras.user_id == "zhangsan"
    assert extras.external_user_id == "woAJ2GCAAAXtWyujaWJHDDGi0mAAAA"
    assert extras.state == "teststate"
    assert extras.describe() == (
        'UserID: "zhangsan", ExternalUserID: "woAJ2GCAAAXtWyujaWJHDDGi0mAAAA", State: "teststate"'
    )


def test_image_describe_uses_inputs():
    root = parse("<xml><PicUrl>pic-link</PicUrl><MediaId>media-1</MediaId></xml>")
    extras = ImageMessageExtras.from_element(root)
    assert extras.pic_url == "pic-link"
    assert extras.media_id == "media-1"
    assert extras.describe() == 'PicURL: "pic-link", MediaID: "media-1"'


def test_missing_fields_take_defaults():
    extras = VoiceMessageExtras.from_element(parse("<xml></xml>"))
    assert extras == VoiceMessageExtras(media_id="", format="")
    location = LocationMessageExtras.from_element(parse("<xml/>"))
    assert location.latitude == 0.0
    assert location.scale == 0


def test_location_parsing_and_describe():
    root = parse(
        "<xml><Location_X>23.134</Location_X><Location_Y>113.358</Location_Y>"
        "<Scale> 20 </Scale><Label>somewhere</Label><AppType>wxwork</AppType></xml>"
    )
    extras = LocationMessageExtras.from_element(root)
    assert extras.latitude == 23.134
    assert extras.longitude == 113.358
    assert extras.scale == 20
    assert extras.app_type == "wxwork"
    assert extras.describe() == (
        'Latitude: 23.134, Longitude: 113.358, Scale: 20, Label: "somewhere"'
    )


def test_whole_float_has_no_fraction_in_describe():
    extras = LocationMessageExtras(latitude=113.0, longitude=-5.5, scale=3, label="")
    assert extras.describe().startswith("Latitude: 113, Longitude: -5.5, Scale: 3")


def test_bad_integer_raises():
    with pytest.raises(ValueError):
        EventChangeTypeCreateUser.from_element(parse("<xml><Gender>male</Gender></xml>"))


def test_bad_float_raises():
    with pytest.raises(ValueError):
        LocationMessageExtras.from_element(parse("<xml><Location_X>north</Location_X></xml>"))


def test_last_duplicate_wins():
    root = parse("<xml><Content>first</Content><Content>second</Content></xml>")
    assert TextMessageExtras.from_element(root).content == "second"


def test_special_characters_are_escaped():
    extras = TextMessageExtras(content='a\nb"c')
    assert extras.describe() == 'Content: "a\\nb\\"c"'


def test_update_user_reads_direct_children_only():
    extras = EventChangeTypeUpdateUser.from_element(parse(UPDATE_BODY))
    assert extras.user_id == "zhangsan"
    assert extras.new_user_id == "zhangsan001"
    assert extras.name == "张三"
    assert extras.department == "1,2,3"
    assert extras.is_leader_in_dept == "1,0,0"
    assert extras.gender == 1
    assert extras.status == 1
    assert extras.address == "广州市"
    assert extras.ext_attr == ""
    assert extras.value == ""
    assert extras.url == ""
    assert extras.describe().startswith("UpdateUser: EventChangeTypeUpdateUser{")
    assert 'NewUserID:"zhangsan001"' in extras.describe()


def test_create_user_describe():
    extras = EventChangeTypeCreateUser.from_element(parse(UPDATE_BODY))
    assert extras.user_id == "zhangsan"
    assert extras.describe().startswith(
        'CreateUser: EventChangeTypeCreateUser{UserID:"zhangsan", Name:"张三"'
    )


def test_approval_info_kept_as_tree():
    root = parse(
        "<xml><ApprovalInfo><SpNo>1</SpNo><SpName>leave</SpName>"
        "<Notifyer><UserId>a</UserId></Notifyer><Notifyer><UserId>b</UserId></Notifyer>"
        "</ApprovalInfo></xml>"
    )
    extras = EventSysApprovalChange.from_element(root)
    assert extras.approval_info == {
        "SpNo": "1",
        "SpName": "leave",
        "Notifyer": [{"UserId": "a"}, {"UserId": "b"}],
    }


def test_app_menu_click_event_key():
    extras = EventAppMenuClick.from_element(parse("<xml><EventKey>menu-1</EventKey></xml>"))
    assert extras.event_key == "menu-1"
    assert extras.describe() == 'EventKey: "menu-1"'


def test_unknown_event_describes_raw_body():
    extras = EventUnknown(event_type="enter_agent", raw="<xml/>")
    assert extras.describe() == 'Raw: "<xml/>"'
    assert extras.event_type == "enter_agent"