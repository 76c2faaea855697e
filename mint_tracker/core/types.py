"""
Data types for candy machine mint tracking
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


LAMPORTS_PER_SOL = 1_000_000_000

# Bot name -> on-chain address, in configuration order
BotAddressTable = Dict[str, str]


def format_fee(lamports: int) -> str:
    """Render a lamport amount as SOL with exactly 9 decimals"""
    return f"{Decimal(int(lamports)) / LAMPORTS_PER_SOL:.9f}"


def transaction_meta(payload: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """meta of a getTransaction result, None when the transaction or its metadata is absent"""
    if not payload:
        return None
    return payload.get("meta") or None


def logs_have_marker(log_messages: List[str], markers: List[str]) -> bool:
    """True when any log line starts with any of the markers"""
    return any(
        line.startswith(marker)
        for line in log_messages
        for marker in markers
    )


class MintOutcome(str, Enum):
    """How a single transaction was classified"""
    BOT = "bot"
    UNMARKED = "unmarked"
    INVALID = "invalid"
    IRRELEVANT = "irrelevant"


@dataclass(frozen=True)
class SignatureRecord:
    """One entry of an address's signature history"""
    signature: str
    block_time: Optional[int]
    err: Optional[Any] = None

    @classmethod
    def from_rpc(cls, entry: Dict[str, Any]) -> "SignatureRecord":
        return cls(
            signature=entry["signature"],
            block_time=entry.get("blockTime"),
            err=entry.get("err"),
        )

    def in_window(self, start_time: int, end_time: int) -> bool:
        return self.block_time is not None and start_time <= self.block_time <= end_time


@dataclass(frozen=True)
class TransactionRecord:
    """The parts of a parsed transaction the classifier looks at"""
    signature: str
    fee: int
    err: Optional[Any]
    log_messages: List[str] = field(default_factory=list)
    involved_address: Optional[str] = None

    @classmethod
    def from_rpc(cls, payload: Optional[Dict[str, Any]], fallback_signature: str = "") -> Optional["TransactionRecord"]:
        """
        Build a record from a jsonParsed getTransaction result

        Returns None when the transaction or its metadata is absent.
        Raises KeyError/TypeError on structurally malformed payloads.
        """
        meta = transaction_meta(payload)
        if meta is None:
            return None

        transaction = payload.get("transaction") or {}
        message = transaction.get("message") or {}

        signatures = transaction.get("signatures") or []
        signature = signatures[0] if signatures else fallback_signature

        return cls(
            signature=signature,
            fee=int(meta["fee"]),
            err=meta.get("err"),
            log_messages=list(meta.get("logMessages") or []),
            involved_address=cls._first_lookup_address(message),
        )

    @staticmethod
    def _first_lookup_address(message: Dict[str, Any]) -> Optional[str]:
        """accountKey of the first address table lookup, if there is one"""
        lookups = message.get("addressTableLookups") or []
        if not lookups:
            return None
        account_key = lookups[0].get("accountKey")
        return str(account_key) if account_key else None

    def is_valid(self) -> bool:
        return self.err is None

    def has_log_marker(self, markers: List[str]) -> bool:
        return logs_have_marker(self.log_messages, markers)


@dataclass(frozen=True)
class BotMint:
    """A bot-attributed transaction, one CSV row"""
    signature: str
    bot_name: str
    fee: str

    def to_row(self) -> List[str]:
        return [self.signature, self.bot_name, self.fee]


@dataclass
class ClassificationResult:
    """Counts and rows accumulated by the classifier"""
    bot_counts: Dict[str, int]
    unmarked_count: int = 0
    rows: List[BotMint] = field(default_factory=list)
    skipped_invalid: int = 0
    skipped_irrelevant: int = 0

    @classmethod
    def for_bots(cls, bot_addresses: BotAddressTable) -> "ClassificationResult":
        return cls(bot_counts={name: 0 for name in bot_addresses})

    @property
    def total_bot_mints(self) -> int:
        return sum(self.bot_counts.values())

    @property
    def total_classified(self) -> int:
        """Transactions that passed the validity and relevance filters"""
        return self.total_bot_mints + self.unmarked_count

    def record_bot(self, mint: BotMint) -> None:
        # KeyError for names outside the bot table
        self.bot_counts[mint.bot_name] += 1
        self.rows.append(mint)

    def record(self, outcome: MintOutcome) -> None:
        """Tally a non-bot outcome"""
        if outcome == MintOutcome.UNMARKED:
            self.unmarked_count += 1
        elif outcome == MintOutcome.INVALID:
            self.skipped_invalid += 1
        elif outcome == MintOutcome.IRRELEVANT:
            self.skipped_irrelevant += 1
