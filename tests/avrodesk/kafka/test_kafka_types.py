"""Tests for Kafka message types and security settings."""

import json
from datetime import UTC, datetime

import pytest

from avrodesk.avro.codec import encode_message
from avrodesk.avro.schema import compile_schema
from avrodesk.kafka.security import build_kafka_security_config
from avrodesk.kafka.types import RawRecord, subject_to_topic, to_consumed_message
from config.config import KafkaConfig

USER = {"id": 1, "name": "Ada", "email": None, "status": "ACTIVE", "tags": [], "score": 1.5}


def _record(value, key=b"user-1", timestamp=1700000000000):
    return RawRecord(topic="users", partition=0, offset=4, timestamp=timestamp, key=key, value=value)


class TestSubjectToTopic:
    @pytest.mark.parametrize(
        "subject,topic",
        [
            ("orders-value", "orders"),
            ("orders-key", "orders"),
            ("orders", "orders"),
            ("my-value-stream-value", "my-value-stream"),
        ],
    )
    def test_strips_suffix(self, subject, topic):
        assert subject_to_topic(subject) == topic


class TestToConsumedMessage:
    def test_decodes_framed_value(self, user_schema):
        message = to_consumed_message(
            _record(encode_message(user_schema, 42, json.dumps(USER))), user_schema
        )
        assert json.loads(message.value) == USER
        assert message.schema_id == 42
        assert message.decode_error is None
        assert message.key == "user-1"
        assert message.timestamp == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)

    def test_unframed_value_shown_as_text(self, user_schema):
        message = to_consumed_message(_record(b"plain"), user_schema)
        assert message.value == "plain"
        assert "too short" in message.decode_error

    def test_without_schema(self):
        message = to_consumed_message(_record(b"\x00\x00\x00\x00\x01abc"), None)
        assert message.schema_id == 1
        assert message.decode_error == "no Avro schema to decode with"

    def test_record_from_other_schema_version_not_decoded(self):
        v1 = compile_schema(
            '{"type": "record", "name": "Pair", "fields": ['
            '{"name": "a", "type": "long"}, {"name": "b", "type": "long"}]}'
        )
        v2 = compile_schema('{"type": "record", "name": "Pair", "fields": [{"name": "a", "type": "long"}]}')
        raw = encode_message(v1, 1, '{"a": 5, "b": 7}')

        message = to_consumed_message(_record(raw), v2, expected_schema_id=2)

        assert message.schema_id == 1
        assert message.decode_error == "written with schema id 1, viewing schema id 2"
        assert message.value == raw.decode("utf-8", errors="replace")

    def test_matching_schema_id_decodes(self, user_schema):
        raw = encode_message(user_schema, 42, json.dumps(USER))
        message = to_consumed_message(_record(raw), user_schema, expected_schema_id=42)
        assert message.decode_error is None
        assert json.loads(message.value) == USER

    def test_tombstone(self, user_schema):
        message = to_consumed_message(_record(None, key=None, timestamp=-1), user_schema)
        assert message.value == ""
        assert message.key == ""
        assert message.timestamp is None
        assert message.decode_error is not None


class TestSecurityConfig:
    def test_plaintext(self):
        assert build_kafka_security_config(KafkaConfig(bootstrap_servers="b:9092")) == {}

    def test_sasl_ssl(self):
        config = KafkaConfig(
            bootstrap_servers="b:9093",
            security_protocol="SASL_SSL",
            sasl_mechanism="SCRAM-SHA-512",
            sasl_username="user",
            sasl_password="secret",
        )
        settings = build_kafka_security_config(config)
        assert settings["security_protocol"] == "SASL_SSL"
        assert settings["sasl_mechanism"] == "SCRAM-SHA-512"
        assert settings["sasl_plain_username"] == "user"
        assert settings["sasl_plain_password"] == "secret"
        assert "ssl_context" in settings

    def test_sasl_plaintext_has_no_ssl_context(self):
        config = KafkaConfig(security_protocol="SASL_PLAINTEXT", sasl_username="u", sasl_password="p")
        assert "ssl_context" not in build_kafka_security_config(config)
