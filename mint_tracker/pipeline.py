"""
Collect -> classify -> report pipeline
"""

from typing import Optional

from mint_tracker.clients.solana_rpc import SolanaRPCClient
from mint_tracker.core.config import TrackerConfig
from mint_tracker.core.logger import get_logger, run_context
from mint_tracker.core.metrics import get_metrics
from mint_tracker.core.report import print_summary, write_csv
from mint_tracker.core.signature_collector import SignatureCollector
from mint_tracker.core.transaction_classifier import TransactionClassifier
from mint_tracker.core.types import ClassificationResult


logger = get_logger(__name__)


async def run_pipeline(config: TrackerConfig, rpc_client=None) -> ClassificationResult:
    """
    Run one tracking pass for the configured candy machine

    Args:
        config: Loaded tracker configuration
        rpc_client: Optional client to use instead of a SolanaRPCClient
            built from config.rpc_config (the caller then owns its lifecycle)

    Returns:
        The classification result that was written and printed

    Raises:
        Any signature page fetch error; nothing is written in that case
    """
    with run_context(config.candy_machine_address, config.start_time, config.end_time):
        logger.info(
            "pipeline_starting",
            bots=list(config.bot_addresses),
            batch_size=config.classifier_config.batch_size,
            relevance_filter=config.classifier_config.relevance_filter
        )

        if rpc_client is None:
            async with SolanaRPCClient(config.rpc_config) as client:
                result = await _collect_and_classify(config, client)
        else:
            result = await _collect_and_classify(config, rpc_client)

        csv_path = config.output_config.csv_path
        write_csv(result.rows, csv_path)
        print_summary(result, csv_path)

        logger.debug("pipeline_metrics", **get_metrics().export_metrics())
    return result


async def _collect_and_classify(config: TrackerConfig, client) -> ClassificationResult:
    collector = SignatureCollector(client, page_limit=config.collector_config.page_limit)
    signatures = await collector.collect(
        config.candy_machine_address,
        config.start_time,
        config.end_time
    )

    classifier = TransactionClassifier(
        client,
        config.bot_addresses,
        config.classifier_config
    )
    return await classifier.classify(
        signatures,
        show_progress=config.output_config.show_progress
    )
