"""Tests for quoter configuration."""

from decimal import Decimal

import pytest

from quoter.config import DEFAULT_SETTINGS, CloneContracts, CustomNetwork, QuoterSettings
from quoter.constants import UNISWAP_V2_ROUTER_ADDRESS, UNISWAP_V3_QUOTER_ADDRESS
from quoter.errors import ConfigurationError, ErrorCode
from quoter.models.route import ProtocolVersion
from tests.helpers import USDC, WETH


class TestQuoterSettings:
    """Tests for QuoterSettings."""

    def test_defaults(self):
        """Defaults quote both versions with one intermediary."""
        assert DEFAULT_SETTINGS.versions == (ProtocolVersion.V2, ProtocolVersion.V3)
        assert DEFAULT_SETTINGS.max_intermediaries == 1
        assert DEFAULT_SETTINGS.quote_ttl_seconds == 20 * 60
        assert DEFAULT_SETTINGS.price_change_tolerance == Decimal(0)
        assert not DEFAULT_SETTINGS.disable_multihop
        assert DEFAULT_SETTINGS.custom_network is None
        assert DEFAULT_SETTINGS.clone_contracts == CloneContracts(
            v2_router=UNISWAP_V2_ROUTER_ADDRESS, v3_quoter=UNISWAP_V3_QUOTER_ADDRESS
        )

    def test_has_version(self):
        settings = QuoterSettings(versions=(ProtocolVersion.V3,))
        assert settings.has_version(ProtocolVersion.V3)
        assert not settings.has_version(ProtocolVersion.V2)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"versions": ()},
            {"max_intermediaries": 3},
            {"max_intermediaries": -1},
            {"quote_ttl_seconds": 0},
            {"block_poll_interval": -1},
            {"price_change_tolerance": Decimal("-0.1")},
        ],
    )
    def test_invalid_settings(self, kwargs):
        """Out-of-range values raise ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc_info:
            QuoterSettings(**kwargs)
        assert exc_info.value.code == ErrorCode.INVALID_SETTINGS

    def test_frozen(self):
        """Settings are immutable."""
        with pytest.raises(AttributeError):
            DEFAULT_SETTINGS.disable_multihop = True  # type: ignore[misc]


class TestFromEnv:
    """Tests for QuoterSettings.from_env."""

    def test_reads_environment(self, monkeypatch):
        """QUOTER_* variables override the defaults."""
        monkeypatch.setenv("QUOTER_DISABLE_MULTIHOP", "true")
        monkeypatch.setenv("QUOTER_VERSIONS", "V3")
        monkeypatch.setenv("QUOTER_MAX_INTERMEDIARIES", "2")
        monkeypatch.setenv("QUOTER_QUOTE_TTL_SECONDS", "60")
        monkeypatch.setenv("QUOTER_BLOCK_POLL_INTERVAL", "0.5")

        settings = QuoterSettings.from_env()

        assert settings.disable_multihop
        assert settings.versions == (ProtocolVersion.V3,)
        assert settings.max_intermediaries == 2
        assert settings.quote_ttl_seconds == 60
        assert settings.block_poll_interval == 0.5

    def test_empty_environment(self, monkeypatch):
        """Without variables the defaults apply."""
        for name in (
            "QUOTER_DISABLE_MULTIHOP",
            "QUOTER_VERSIONS",
            "QUOTER_MAX_INTERMEDIARIES",
            "QUOTER_QUOTE_TTL_SECONDS",
            "QUOTER_BLOCK_POLL_INTERVAL",
        ):
            monkeypatch.delenv(name, raising=False)
        assert QuoterSettings.from_env() == QuoterSettings()

    @pytest.mark.parametrize(
        "name,value",
        [("QUOTER_VERSIONS", "v4"), ("QUOTER_MAX_INTERMEDIARIES", "many")],
    )
    def test_invalid_environment(self, monkeypatch, name, value):
        """Unparseable variables raise ConfigurationError."""
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigurationError):
            QuoterSettings.from_env()


class TestCustomNetwork:
    """Tests for CustomNetwork."""

    def test_valid(self):
        network = CustomNetwork(name="fork", wrapped_native=WETH, base_tokens=(USDC,))
        assert network.base_tokens == (USDC,)

    def test_invalid_address(self):
        """Every address is validated."""
        with pytest.raises(ConfigurationError, match="invalid address"):
            CustomNetwork(name="fork", wrapped_native=WETH, base_tokens=("0x1234",))
