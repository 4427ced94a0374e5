"""
Stream Message Model Tests.

============================================================
PURPOSE
============================================================
Unit tests for frame classification and the subscribe payload.

============================================================
"""

import pytest

from gdax_client import ChannelSpec, MessageKind, SubscribeOptions, classify
from gdax_client.messages import KNOWN_TAGS


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize("kind", [k for k in MessageKind if k is not MessageKind.UNKNOWN])
    def test_known_kinds(self, kind):
        """Test every known discriminant routes to its kind."""
        message = classify({"type": kind.value})

        assert message.kind is kind
        assert message.tag == kind.value

    def test_level2_alias(self):
        """Test the level2 tag routes to the level2 kind."""
        assert classify({"type": "level2"}).kind is MessageKind.LEVEL2
        assert classify({"type": "l2update"}).kind is MessageKind.LEVEL2

    @pytest.mark.parametrize("payload", [
        {"type": "subscriptions", "channels": []},
        {"type": "unknown"},
        {"type": "heartbeart"},
        {"type": 5},
        {"price": "1.0"},
        [1, 2, 3],
        "text",
        None,
    ])
    def test_unknown(self, payload):
        """Test anything else is UNKNOWN and keeps the raw value."""
        message = classify(payload)

        assert message.kind is MessageKind.UNKNOWN
        assert message.payload is payload

    def test_known_tags_exclude_unknown(self):
        """Test "unknown" is never a wire tag."""
        assert "unknown" not in KNOWN_TAGS
        assert len(set(KNOWN_TAGS.values())) == len(MessageKind) - 1


class TestSubscribeOptions:
    """Tests for the subscribe payload."""

    def test_bare_channels(self):
        """Test bare channel names."""
        options = SubscribeOptions(product_ids=["BTC-USD"], channels=["ticker", "heartbeat"])

        assert options.to_payload() == {
            "type": "subscribe",
            "product_ids": ["BTC-USD"],
            "channels": ["ticker", "heartbeat"],
        }
        assert options.verify_path == "/users/self/verify"

    def test_channel_specs(self):
        """Test channels with their own product lists."""
        options = SubscribeOptions(
            product_ids=["BTC-USD"],
            channels=["heartbeat", ChannelSpec("level2", ["ETH-USD", "BTC-USD"])],
        )

        assert options.to_payload()["channels"] == [
            "heartbeat",
            {"name": "level2", "product_ids": ["ETH-USD", "BTC-USD"]},
        ]

    def test_no_channels(self):
        """Test product-only subscriptions omit channels."""
        options = SubscribeOptions(product_ids=["BTC-USD", "ETH-USD"])

        assert options.to_payload() == {
            "type": "subscribe",
            "product_ids": ["BTC-USD", "ETH-USD"],
        }
        assert options.has_channels is False
        assert options.verify_path == "/users/self"

    def test_explicit_empty_channels_kept(self):
        """Test an empty channel list is sent and signs the verify path."""
        options = SubscribeOptions(product_ids=["BTC-USD"], channels=[])

        assert options.to_payload() == {
            "type": "subscribe",
            "product_ids": ["BTC-USD"],
            "channels": [],
        }
        assert options.has_channels is True
        assert options.verify_path == "/users/self/verify"
