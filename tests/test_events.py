"""Tests for inbound event decoding and hashing."""

from signal_llm_bot.events import Envelope, decode_envelope, envelopes_from_payload, event_hash


class TestDecodeEnvelope:
    """Test lenient envelope decoding."""

    def test_wrapped_envelope(self):
        env = decode_envelope(
            {
                "account": "+15550001111",
                "envelope": {
                    "sourceNumber": "+15550002222",
                    "timestamp": 1700000000000,
                    "dataMessage": {"message": "hi", "groupInfo": {"groupId": "g=="}},
                },
            }
        )

        assert env.source_number == "+15550002222"
        assert env.timestamp == 1700000000000
        assert env.data_message.message == "hi"
        assert env.data_message.group_info.group_id == "g=="

    def test_unknown_fields_are_ignored(self):
        env = decode_envelope({"sourceNumber": "+1", "receiptMessage": {"isDelivery": True}, "extra": 1})

        assert env.source_number == "+1"
        assert env.data_message is None

    def test_envelope_instance_passes_through(self):
        env = Envelope(source="+1")
        assert decode_envelope(env) is env

    def test_non_mapping_gives_empty_envelope(self):
        assert decode_envelope(None) == Envelope()
        assert decode_envelope("text") == Envelope()

    def test_invalid_scalar_falls_back_to_default(self):
        env = decode_envelope({"sourceNumber": 12345, "timestamp": "soon", "sourceUuid": "u"})

        assert env.source_number == ""
        assert env.timestamp == 0
        assert env.source_uuid == "u"

    def test_input_is_not_modified(self):
        raw = {"dataMessage": {"message": "x", "mentions": ["junk"]}}
        decode_envelope(raw)

        assert raw["dataMessage"]["mentions"] == ["junk"]

    def test_many_invalid_mentions_keep_the_rest(self):
        mentions = ["junk"] * 70 + [{"start": 0, "length": 4, "number": "+15550001111"}]
        env = decode_envelope(
            {"sourceNumber": "+15550002222", "dataMessage": {"message": "@bot hi", "mentions": mentions}}
        )

        assert env.source_number == "+15550002222"
        assert env.data_message.message == "@bot hi"
        assert [m.number for m in env.data_message.mentions] == ["+15550001111"]

    def test_invalid_fields_at_several_depths(self):
        env = decode_envelope(
            {
                "timestamp": "soon",
                "dataMessage": {
                    "message": "hi",
                    "mentions": [{"start": "x", "length": "y"}, 5, {"start": 1, "length": 2}],
                    "quote": {"id": "nope", "text": "earlier"},
                },
            }
        )

        assert env.timestamp == 0
        assert env.data_message.message == "hi"
        assert [(m.start, m.length) for m in env.data_message.mentions] == [(1, 2)]
        assert env.data_message.quote.id == 0
        assert env.data_message.quote.text == "earlier"

    def test_mention_null_fields(self):
        env = decode_envelope({"dataMessage": {"mentions": [{"start": 0, "length": 3, "number": None}]}})

        assert len(env.data_message.mentions) == 1
        assert env.data_message.mentions[0].number == ""


class TestEnvelopesFromPayload:
    """Test unwrapping of receive responses."""

    def test_list_of_wrappers(self):
        payload = [
            {"envelope": {"timestamp": 1}, "account": "+1"},
            {"envelope": {"timestamp": 2}, "account": "+1"},
        ]
        assert envelopes_from_payload(payload) == [{"timestamp": 1}, {"timestamp": 2}]

    def test_single_wrapper(self):
        assert envelopes_from_payload({"envelope": {"timestamp": 1}}) == [{"timestamp": 1}]

    def test_items_without_envelope_are_skipped(self):
        assert envelopes_from_payload([{"account": "+1"}, "junk", {"envelope": {"timestamp": 3}}]) == [
            {"timestamp": 3}
        ]

    def test_garbage_payload(self):
        assert envelopes_from_payload("nope") == []
        assert envelopes_from_payload(None) == []


class TestEventHash:
    """Test canonical event hashing."""

    def test_key_order_does_not_matter(self):
        a = {"sourceNumber": "+1", "dataMessage": {"message": "hi", "timestamp": 1}}
        b = {"dataMessage": {"timestamp": 1, "message": "hi"}, "sourceNumber": "+1"}

        assert event_hash(a) == event_hash(b)

    def test_different_events_differ(self):
        assert event_hash({"timestamp": 1}) != event_hash({"timestamp": 2})

    def test_sha1_hex_digest(self):
        digest = event_hash({"message": "héllo"})

        assert len(digest) == 40
        int(digest, 16)

    def test_model_hash_is_stable(self):
        env = Envelope(source="+1")
        assert event_hash(env) == event_hash(Envelope(source="+1"))

    def test_unknown_fields_do_not_change_hash(self):
        a = {"sourceNumber": "+1", "timestamp": 7, "serverDeliveredTimestamp": 100}
        b = {"sourceNumber": "+1", "timestamp": 7, "serverDeliveredTimestamp": 200}

        assert event_hash(a) == event_hash(b)

    def test_wrapped_and_bare_envelope_hash_alike(self):
        env = {"sourceNumber": "+1", "timestamp": 7}
        assert event_hash({"envelope": env, "account": "+2"}) == event_hash(env)
