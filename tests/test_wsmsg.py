import json

import pytest

from signalhub.wsmsg import WsMsg


def test_not_found_wire_text():
    msg = WsMsg.error_not_found("peer-a")
    assert msg.to_json_string() == (
        '{"data":"not found recv id","receiver":"peer-a","sender":"server","type":"error"}'
    )


def test_offline_message_fields():
    msg = WsMsg.offline("peer-a")
    assert msg == WsMsg("error", "The controlled end may not be online", "server", "peer-a")


def test_pwd_error_carries_offline_text():
    assert WsMsg.error_pwd("peer-a") == WsMsg.offline("peer-a")


def test_round_trip_with_object_data():
    msg = WsMsg("offer", {"sdp": "v=0", "items": [1, 2]}, "peer-a", "peer-b")
    assert WsMsg.from_json_string(msg.to_json_string()) == msg


def test_round_trip_with_array_data():
    msg = WsMsg("onlineList", [{"sn": "x"}, {"sn": "y"}], "server", "peer-b")
    assert WsMsg.from_json_string(msg.to_json_string()) == msg


def test_to_json_has_all_keys():
    assert set(WsMsg().to_json()) == {"type", "sender", "receiver", "data"}


def test_empty_message_serialises_null_data():
    assert json.loads(WsMsg().to_json_string())["data"] is None


@pytest.mark.parametrize("text", ["not json", "[1, 2]", '"text"', "", "{"])
def test_non_object_text_gives_empty_message(text):
    assert WsMsg.from_json_string(text) == WsMsg()


def test_non_string_fields_become_empty():
    msg = WsMsg.from_json_string('{"type": 3, "sender": null, "receiver": ["x"]}')
    assert msg.type == ""
    assert msg.sender == ""
    assert msg.receiver == ""


def test_numeric_data_goes_out_as_text():
    msg = WsMsg.from_json_string('{"type":"x","data":5}')
    assert msg.to_json()["data"] == "5"


def test_boolean_data_goes_out_as_text():
    assert WsMsg("x", True).to_json()["data"] == "true"


def test_non_ascii_is_kept():
    msg = WsMsg("chat", "你好", "a", "b")
    text = msg.to_json_string()
    assert "你好" in text
    assert WsMsg.from_json_string(text) == msg