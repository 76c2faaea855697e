"""
Pytest configuration and shared fixtures
These fixtures are available to all test files
"""

import asyncio
from typing import Any, Dict, List, Optional

import pytest
import yaml

from mint_tracker.clients.solana_rpc import RPCError
from mint_tracker.core.logger import setup_logging
from mint_tracker.core.metrics import get_metrics


CANDY_MACHINE = "CndyV3LdqHUfDLmE5naZjVN8rBZz4tqhdefbAnjHG3JR"
BOT_A_ADDRESS = "4Nd1mBQtrMJVYVfKf2PJy9NZUZdTAsp7D4xWLs4gDB4T"
BOT_B_ADDRESS = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
OTHER_ADDRESS = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"


class FakeRPCClient:
    """
    In-memory stand-in for SolanaRPCClient

    history is newest-first raw signature entries; transactions maps a
    signature to its getTransaction payload (missing -> None).
    """

    def __init__(
        self,
        history: Optional[List[Dict[str, Any]]] = None,
        transactions: Optional[Dict[str, Any]] = None,
        failing: Optional[set] = None,
        page_error: Optional[Exception] = None
    ):
        self.history = list(history or [])
        self.transactions = dict(transactions or {})
        self.failing = set(failing or ())
        self.page_error = page_error
        self.page_requests: List[Optional[str]] = []
        self.transaction_requests: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_signatures_for_address(self, address, before=None, limit=1000):
        self.page_requests.append(before)
        if self.page_error is not None:
            raise self.page_error

        start = 0
        if before is not None:
            signatures = [entry["signature"] for entry in self.history]
            start = signatures.index(before) + 1
        return self.history[start:start + limit]

    async def get_parsed_transaction(self, signature):
        self.transaction_requests.append(signature)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.in_flight -= 1

        if signature in self.failing:
            raise RPCError("getTransaction", "node is behind", -32004)
        return self.transactions.get(signature)


def build_signature(signature: str, block_time: Optional[int], err: Any = None) -> Dict[str, Any]:
    return {
        "signature": signature,
        "slot": 250_000_000,
        "err": err,
        "memo": None,
        "blockTime": block_time,
        "confirmationStatus": "finalized"
    }


def build_transaction(
    signature: str,
    lookup_address: Optional[str] = None,
    fee: int = 5000,
    err: Any = None,
    logs: Optional[List[str]] = None,
    include_lookups: bool = True
) -> Dict[str, Any]:
    message: Dict[str, Any] = {
        "accountKeys": [
            {"pubkey": OTHER_ADDRESS, "signer": True, "writable": True, "source": "transaction"}
        ],
        "instructions": [],
        "recentBlockhash": "EkSnNWid2cvwEVnVx9aBqawnmiCNiDgp3gUdkDPTKN1N"
    }
    if include_lookups:
        message["addressTableLookups"] = (
            [{"accountKey": lookup_address, "writableIndexes": [0], "readonlyIndexes": [1]}]
            if lookup_address else []
        )

    return {
        "slot": 250_000_000,
        "blockTime": 1700000000,
        "version": 0,
        "meta": {
            "err": err,
            "fee": fee,
            "logMessages": logs if logs is not None else ["Program log: Instruction: MintV2"],
            "preBalances": [],
            "postBalances": []
        },
        "transaction": {
            "signatures": [signature],
            "message": message
        }
    }


@pytest.fixture(autouse=True, scope="session")
def quiet_logging():
    """Keep structlog output off stdout during tests"""
    setup_logging(level="WARNING", format="console")


@pytest.fixture(autouse=True)
def reset_metrics():
    """Fresh global metrics for each test"""
    get_metrics().reset()
    yield
    get_metrics().reset()


@pytest.fixture
def make_signature():
    return build_signature


@pytest.fixture
def make_transaction():
    return build_transaction


@pytest.fixture
def fake_rpc():
    """Factory for FakeRPCClient instances"""
    return FakeRPCClient


@pytest.fixture
def bot_addresses() -> Dict[str, str]:
    return {"BotA": BOT_A_ADDRESS, "BotB": BOT_B_ADDRESS}


@pytest.fixture
def candy_machine() -> str:
    return CANDY_MACHINE


@pytest.fixture
def other_address() -> str:
    """A valid address that belongs to no bot"""
    return OTHER_ADDRESS


@pytest.fixture
def test_config_dict(tmp_path) -> Dict[str, Any]:
    """
    Sample configuration dictionary for testing

    Returns valid config that can be modified per test
    """
    return {
        "rpc": {
            "url": "https://api.devnet.solana.com",
            "commitment": "confirmed"
        },
        "candy_machine_address": CANDY_MACHINE,
        "bot_addresses": {
            "BotA": BOT_A_ADDRESS,
            "BotB": BOT_B_ADDRESS
        },
        "start_time": 1700000000,
        "end_time": 1700086400,
        "collector": {"page_limit": 1000},
        "classifier": {"batch_size": 100, "relevance_filter": False},
        "output": {"csv_path": str(tmp_path / "transactions.csv"), "show_progress": False},
        "logging": {"level": "DEBUG", "format": "json", "output_file": None}
    }


@pytest.fixture
def test_config_file(test_config_dict, tmp_path):
    """
    Create a temporary config file for testing

    Returns path to temporary YAML config file
    """
    config_file = tmp_path / "test_config.yml"
    with open(config_file, 'w') as f:
        yaml.dump(test_config_dict, f)

    return str(config_file)
