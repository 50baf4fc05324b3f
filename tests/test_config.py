"""
Tests for RaisinConfig.
"""
import os

import pytest

from raisin_sdk.config import DEFAULT_CONFIRMATIONS, RaisinConfig
from raisin_sdk.exceptions import ConfigurationError
from conftest import RAISIN_ADDRESS, TEST_RPC_URL


class TestRaisinConfig:
    """Test RaisinConfig validation and environment loading."""

    def test_defaults(self):
        """Only the RPC URL is required."""
        config = RaisinConfig(rpc_url=TEST_RPC_URL)
        assert config.raisin_address == RAISIN_ADDRESS
        assert config.confirmations == DEFAULT_CONFIRMATIONS == 6
        assert config.raisin_abi_path is None
        assert config.gas_price is None

    @pytest.mark.parametrize("url", [
        "https://sepolia.example.org/v3/key",
        "http://localhost:8545",
        "http://127.0.0.1:8545",
    ])
    def test_allowed_rpc_urls(self, url):
        assert RaisinConfig(rpc_url=url).rpc_url == url

    def test_plain_http_is_rejected(self):
        """Remote endpoints must use https."""
        with pytest.raises(ValueError, match="https"):
            RaisinConfig(rpc_url="http://rpc.example.com")

    def test_raisin_address_is_checksummed(self):
        config = RaisinConfig(rpc_url=TEST_RPC_URL, raisin_address=RAISIN_ADDRESS.lower())
        assert config.raisin_address == RAISIN_ADDRESS

    def test_bad_raisin_address(self):
        with pytest.raises(ValueError, match="Invalid address"):
            RaisinConfig(rpc_url=TEST_RPC_URL, raisin_address="0x1234")

    def test_from_env(self):
        """RAISIN_* variables map onto config fields."""
        config = RaisinConfig.from_env(environ={
            "RAISIN_RPC_URL": TEST_RPC_URL,
            "RAISIN_CONFIRMATIONS": "12",
            "RAISIN_POLL_INTERVAL": "0.5",
            "RAISIN_CHAIN_ID": "11155111",
            "RAISIN_GAS_PRICE": "",
        })
        assert config.rpc_url == TEST_RPC_URL
        assert config.confirmations == 12
        assert config.poll_interval == 0.5
        assert config.expected_chain_id == 11155111
        assert config.gas_price is None

    def test_from_env_legacy_api_key(self):
        """API_KEY is accepted as the RPC URL when RAISIN_RPC_URL is unset."""
        config = RaisinConfig.from_env(environ={"API_KEY": TEST_RPC_URL})
        assert config.rpc_url == TEST_RPC_URL

        config = RaisinConfig.from_env(environ={
            "API_KEY": "https://legacy.example.com",
            "RAISIN_RPC_URL": TEST_RPC_URL,
        })
        assert config.rpc_url == TEST_RPC_URL

    def test_overrides_win(self):
        config = RaisinConfig.from_env(
            environ={"RAISIN_RPC_URL": TEST_RPC_URL, "RAISIN_CONFIRMATIONS": "3"},
            confirmations=9,
            gas_price=None
        )
        assert config.confirmations == 9

    def test_missing_rpc_url(self):
        with pytest.raises(ConfigurationError, match="RAISIN_RPC_URL"):
            RaisinConfig.from_env(environ={})

    def test_invalid_value(self):
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            RaisinConfig.from_env(environ={"RAISIN_RPC_URL": TEST_RPC_URL, "RAISIN_CONFIRMATIONS": "0"})

    def test_env_file(self, tmp_path, monkeypatch):
        """Values from a .env file are loaded into the process environment."""
        environ = {"RAISIN_CONFIRMATIONS": "4"}
        monkeypatch.setattr(os, "environ", environ)
        env_file = tmp_path / ".env"
        env_file.write_text(f"RAISIN_RPC_URL={TEST_RPC_URL}\nRAISIN_CONFIRMATIONS=2\n")

        config = RaisinConfig.from_env(str(env_file))

        assert config.rpc_url == TEST_RPC_URL
        # variables already set are not overridden by the file
        assert config.confirmations == 4
        assert environ["RAISIN_RPC_URL"] == TEST_RPC_URL
