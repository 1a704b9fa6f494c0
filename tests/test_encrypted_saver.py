import json

import pytest
from cryptography.exceptions import InvalidTag
from langgraph.checkpoint.base import CheckpointTuple

from config.settings import PII_CHANNELS
from persistence.encrypted_postgres_saver import _open, _open_tuple, _seal, _seal_checkpoint, _seal_writes


def _config(thread_id="form-1"):
    return {
        "configurable": {
            "thread_id": thread_id,
            "checkpoint_ns": "",
            "encrypt_keys": list(PII_CHANNELS),
        }
    }


def _checkpoint():
    return {
        "v": 1,
        "id": "cp-1",
        "ts": "2024-01-01T00:00:00+00:00",
        "channel_values": {
            "values": {"aadhaar": "123456789012", "pan": "ABCDE1234F"},
            "field_value": "123456",
            "current_step": 2,
        },
        "channel_versions": {},
        "versions_seen": {},
    }


def _stored_tuple(config):
    cp = _seal_checkpoint(config, _checkpoint())
    writes = _seal_writes(config, [("field_value", "ABCDE1234F"), ("loading", True)])
    return CheckpointTuple(
        config=config,
        checkpoint=cp,
        metadata={},
        parent_config=None,
        pending_writes=[("task-1", channel, value) for channel, value in writes],
    )


def test_only_listed_channels_are_sealed():
    config = _config()
    t = _stored_tuple(config)
    cv = t.checkpoint["channel_values"]

    assert set(cv["values"]) == {"__enc__", "__fmt__"}
    assert set(cv["field_value"]) == {"__enc__", "__fmt__"}
    assert cv["current_step"] == 2
    assert "123456789012" not in json.dumps(cv)

    channel, value = t.pending_writes[0][1:]
    assert channel == "field_value" and "__enc__" in value
    assert t.pending_writes[1] == ("task-1", "loading", True)


def test_open_tuple_restores_channel_values_and_pending_writes():
    config = _config()
    t = _open_tuple(config, _stored_tuple(config))

    assert t.checkpoint["channel_values"] == _checkpoint()["channel_values"]
    assert t.pending_writes == [
        ("task-1", "field_value", "ABCDE1234F"),
        ("task-1", "loading", True),
    ]


def test_sealed_value_is_bound_to_its_thread():
    sealed = _stored_tuple(_config("form-1"))

    with pytest.raises(InvalidTag):
        _open_tuple(_config("form-2"), sealed)


def test_sealed_value_is_bound_to_its_channel():
    config = _config()
    sealed = _seal(config, "values", {"otp": "123456"})

    assert _open(config, "values", sealed) == {"otp": "123456"}
    with pytest.raises(InvalidTag):
        _open(config, "field_value", sealed)


def test_plain_values_pass_through():
    assert _open(_config(), "values", {"aadhaar": "1"}) == {"aadhaar": "1"}
