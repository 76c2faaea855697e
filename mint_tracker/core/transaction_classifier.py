"""
Transaction classification for candy machine mints

Resolves collected signatures to parsed transactions in fixed-size batches
and attributes each valid mint to a known bot address, or counts it as
unmarked.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

from tqdm import tqdm

from mint_tracker.core.config import ClassifierConfig
from mint_tracker.core.logger import get_logger
from mint_tracker.core.metrics import get_metrics
from mint_tracker.core.types import (
    BotAddressTable,
    BotMint,
    ClassificationResult,
    MintOutcome,
    SignatureRecord,
    TransactionRecord,
    format_fee,
    logs_have_marker,
    transaction_meta,
)


logger = get_logger(__name__)
metrics = get_metrics()


class TransactionClassifier:
    """
    Batch resolver and bot attributor

    Requests inside a batch run concurrently; batches run one after another
    in input order. A failure on one transaction only affects that
    transaction, which is counted as unmarked.
    """

    def __init__(
        self,
        rpc_client,
        bot_addresses: BotAddressTable,
        config: Optional[ClassifierConfig] = None
    ):
        """
        Args:
            rpc_client: Anything with an async get_parsed_transaction(signature)
            bot_addresses: Bot name -> address, scanned in order
            config: Batch size and relevance policy
        """
        self.rpc_client = rpc_client
        self.bot_addresses = dict(bot_addresses)
        self.config = config or ClassifierConfig()

    async def classify(
        self,
        signatures: Sequence[SignatureRecord],
        show_progress: bool = False
    ) -> ClassificationResult:
        """
        Resolve and classify every signature

        Args:
            signatures: Records from the signature collector, in order
            show_progress: Draw a tqdm progress bar

        Returns:
            ClassificationResult with per-bot counts, unmarked count and CSV rows
        """
        result = ClassificationResult.for_bots(self.bot_addresses)
        batch_size = self.config.batch_size

        with tqdm(total=len(signatures), unit="tx", disable=not show_progress) as progress:
            for batch_start in range(0, len(signatures), batch_size):
                batch = signatures[batch_start:batch_start + batch_size]
                payloads = await self._resolve_batch(batch)

                for record, payload in zip(batch, payloads):
                    if isinstance(payload, BaseException):
                        logger.warning(
                            "transaction_resolution_failed",
                            signature=record.signature,
                            error=str(payload)
                        )
                        metrics.increment_counter("transactions_unresolved")
                        result.record(MintOutcome.UNMARKED)
                    else:
                        self.classify_payload(payload, result, record.signature)
                    progress.update(1)

                logger.debug(
                    "batch_classified",
                    batch_start=batch_start,
                    batch_size=len(batch),
                    bot_mints=result.total_bot_mints,
                    unmarked=result.unmarked_count
                )

        logger.info(
            "classification_complete",
            signatures=len(signatures),
            bot_mints=result.total_bot_mints,
            unmarked=result.unmarked_count,
            skipped_invalid=result.skipped_invalid,
            skipped_irrelevant=result.skipped_irrelevant
        )
        return result

    async def _resolve_batch(self, batch: Sequence[SignatureRecord]) -> List[Any]:
        """Fetch a batch concurrently; failures come back as exception objects"""
        return await asyncio.gather(
            *(self.rpc_client.get_parsed_transaction(r.signature) for r in batch),
            return_exceptions=True
        )

    def classify_payload(
        self,
        payload: Optional[Dict[str, Any]],
        result: ClassificationResult,
        requested_signature: str = ""
    ) -> MintOutcome:
        """
        Classify one resolved transaction and tally it into result

        Validity and relevance are decided from meta alone, before the fee
        and lookup address are parsed.

        Returns:
            The outcome recorded for this transaction
        """
        try:
            skipped = self._screen(transaction_meta(payload))
            if skipped is not None:
                result.record(skipped)
                return skipped
            tx = TransactionRecord.from_rpc(payload, fallback_signature=requested_signature)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            # Metadata present but malformed
            logger.debug("transaction_malformed", signature=requested_signature, error=str(e))
            result.record(MintOutcome.UNMARKED)
            return MintOutcome.UNMARKED

        bot_name = self.match_bot(tx.involved_address)
        if bot_name is None:
            result.record(MintOutcome.UNMARKED)
            return MintOutcome.UNMARKED

        result.record_bot(BotMint(
            signature=tx.signature,
            bot_name=bot_name,
            fee=format_fee(tx.fee)
        ))
        return MintOutcome.BOT

    def _screen(self, meta: Optional[Dict[str, Any]]) -> Optional[MintOutcome]:
        """INVALID or IRRELEVANT when the transaction is skipped, else None"""
        if meta is None or meta.get("err") is not None:
            return MintOutcome.INVALID
        if self.config.relevance_filter and not logs_have_marker(
            meta.get("logMessages") or [],
            self.config.relevance_markers
        ):
            return MintOutcome.IRRELEVANT
        return None

    def match_bot(self, involved_address: Optional[str]) -> Optional[str]:
        """First bot whose address equals involved_address, in table order"""
        if involved_address is None:
            return None
        for name, address in self.bot_addresses.items():
            if involved_address == address:
                return name
        return None
