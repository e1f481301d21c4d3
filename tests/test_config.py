"""
Configuration test suite

Coverage:
  - defaults, TOML loading, env overrides, validation
  - network presets and contract identifiers
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from oluolavotes.config import ClientConfig, load_config
from oluolavotes.exceptions import ConfigError
from oluolavotes.network import (
    CONTRACTS,
    GOVERNANCE_CONTRACT,
    MAINNET,
    TESTNET,
    ContractId,
    network_from_name,
)

ENV_VARS = (
    "OLUOLAVOTES_CONFIG",
    "OLUOLAVOTES_NETWORK",
    "OLUOLAVOTES_API_URL",
    "OLUOLAVOTES_REQUEST_TIMEOUT",
    "OLUOLAVOTES_CONTRACT_ADDRESS",
    "OLUOLAVOTES_CONTRACT_NAME",
    "OLUOLAVOTES_SENDER",
    "OLUOLAVOTES_FETCH_CONCURRENCY",
    "OLUOLAVOTES_FAILURE_POLICY",
    "OLUOLAVOTES_FETCH_RETRIES",
    "OLUOLAVOTES_DISCARD_SUPERSEDED",
    "OLUOLAVOTES_WALLET_URL",
    "OLUOLAVOTES_SESSION_FILE",
    "OLUOLAVOTES_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:

    def test_no_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        cfg = load_config()
        assert cfg.network.name == "mainnet"
        assert cfg.contract.contract_id == GOVERNANCE_CONTRACT
        assert cfg.sync.fetch_concurrency == 1
        assert cfg.sync.failure_policy == "omit"
        assert cfg.sync.discard_superseded is True
        assert cfg.validate()

    def test_governance_contract(self):
        assert GOVERNANCE_CONTRACT.identifier == "SP221GWG1PPN83A1TA81DGDWG0V1E21QMKZTGXJ3B.oluolavotes"

    def test_contract_registry(self):
        assert len(CONTRACTS) == 7
        assert all(c.address == GOVERNANCE_CONTRACT.address for c in CONTRACTS.values())
        assert GOVERNANCE_CONTRACT in CONTRACTS.values()


class TestTomlLoading:

    def test_sections(self, tmp_path):
        path = tmp_path / "oluolavotes.toml"
        path.write_text(
            '[network]\n'
            'name = "testnet"\n'
            'api_url = "http://node.local:3999"\n'
            'request_timeout = 5\n'
            '\n'
            '[sync]\n'
            'fetch_concurrency = 4\n'
            'failure_policy = "retry"\n'
            'fetch_retries = 3\n'
            'discard_superseded = false\n'
            '\n'
            '[wallet]\n'
            'bridge_url = "http://127.0.0.1:9000"\n'
            '\n'
            '[logging]\n'
            'level = "debug"\n'
        )
        cfg = load_config(str(path))
        assert cfg.network.resolve().api_url == "http://node.local:3999"
        assert cfg.network.resolve().chain_id == TESTNET.chain_id
        assert cfg.network.request_timeout == 5
        assert cfg.sync.fetch_concurrency == 4
        assert cfg.sync.failure_policy == "retry"
        assert cfg.sync.discard_superseded is False
        assert cfg.wallet.bridge_url == "http://127.0.0.1:9000"
        assert cfg.logging.level == "DEBUG"
        assert cfg.validate()

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[network\nname = ")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(str(path))

    def test_config_env_var_path(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.toml"
        path.write_text('[network]\nname = "devnet"\n')
        monkeypatch.setenv("OLUOLAVOTES_CONFIG", str(path))
        assert load_config().network.name == "devnet"

    def test_explicit_missing_path(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(str(tmp_path / "typo.toml"))

    def test_env_missing_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OLUOLAVOTES_CONFIG", str(tmp_path / "typo.toml"))
        with pytest.raises(ConfigError, match="not found"):
            load_config()

    def test_bad_numeric_value(self, tmp_path):
        path = tmp_path / "oluolavotes.toml"
        path.write_text('[sync]\nfetch_concurrency = "many"\n')
        with pytest.raises(ConfigError, match="fetch_concurrency"):
            load_config(str(path))


class TestEnvOverrides:

    def test_env_beats_file(self, tmp_path, monkeypatch):
        path = tmp_path / "oluolavotes.toml"
        path.write_text('[sync]\nfailure_policy = "retry"\n')
        monkeypatch.setenv("OLUOLAVOTES_FAILURE_POLICY", "FAIL")
        monkeypatch.setenv("OLUOLAVOTES_FETCH_CONCURRENCY", "8")
        monkeypatch.setenv("OLUOLAVOTES_DISCARD_SUPERSEDED", "no")
        monkeypatch.setenv("OLUOLAVOTES_NETWORK", "testnet")
        monkeypatch.setenv("OLUOLAVOTES_LOG_LEVEL", "warning")
        cfg = load_config(str(path))
        assert cfg.sync.failure_policy == "fail"
        assert cfg.sync.fetch_concurrency == 8
        assert cfg.sync.discard_superseded is False
        assert cfg.network.name == "testnet"
        assert cfg.logging.level == "WARNING"

    @pytest.mark.parametrize("name", [
        "OLUOLAVOTES_REQUEST_TIMEOUT",
        "OLUOLAVOTES_FETCH_CONCURRENCY",
        "OLUOLAVOTES_FETCH_RETRIES",
    ])
    def test_bad_numeric_env(self, name, monkeypatch):
        monkeypatch.setenv(name, "abc")
        with pytest.raises(ConfigError, match=name):
            ClientConfig().apply_env()

    def test_session_file_expanded(self, monkeypatch):
        monkeypatch.setenv("OLUOLAVOTES_SESSION_FILE", "~/votes/session.json")
        cfg = ClientConfig()
        cfg.apply_env()
        assert "~" not in str(cfg.wallet.session_path)


class TestValidation:

    def test_unknown_network(self):
        cfg = ClientConfig()
        cfg.network.name = "moonnet"
        with pytest.raises(ConfigError, match="Unknown network"):
            cfg.validate()

    def test_bad_policy(self):
        cfg = ClientConfig()
        cfg.sync.failure_policy = "sometimes"
        with pytest.raises(ConfigError, match="failure_policy"):
            cfg.validate()

    def test_bad_concurrency(self):
        cfg = ClientConfig()
        cfg.sync.fetch_concurrency = 0
        with pytest.raises(ConfigError):
            cfg.validate()

    def test_bad_contract_address(self):
        cfg = ClientConfig()
        cfg.contract.address = "SPNOTANADDRESS"
        with pytest.raises(ConfigError, match="contract address"):
            cfg.validate()

    def test_bad_contract_name(self):
        cfg = ClientConfig()
        cfg.contract.name = "1-bad"
        with pytest.raises(ConfigError, match="contract name"):
            cfg.validate()

    def test_bad_log_level(self):
        cfg = ClientConfig()
        cfg.logging.level = "LOUD"
        with pytest.raises(ConfigError):
            cfg.validate()

    def test_to_dict(self):
        d = ClientConfig().to_dict()
        assert d["contract"]["name"] == "oluolavotes"
        assert d["sync"]["failure_policy"] == "omit"


class TestNetworks:

    def test_presets(self):
        assert network_from_name("mainnet") is MAINNET
        assert network_from_name("TESTNET").name == "testnet"

    def test_api_override(self):
        net = network_from_name("mainnet", "http://localhost:3999/")
        assert net.api_url == "http://localhost:3999"
        assert MAINNET.api_url == "https://api.mainnet.hiro.so"

    def test_unknown(self):
        with pytest.raises(ConfigError):
            network_from_name("moonnet")

    def test_contract_identifier(self):
        assert ContractId("SP1", "oluolavotes").identifier == "SP1.oluolavotes"
