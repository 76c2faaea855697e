"""
Signature collection for a candy machine address

Walks the address's signature history backward from the newest page and
keeps the signatures whose block time falls inside the requested window.
"""

from typing import List, Optional

from mint_tracker.core.logger import get_logger
from mint_tracker.core.metrics import get_metrics
from mint_tracker.core.types import SignatureRecord


logger = get_logger(__name__)
metrics = get_metrics()


class SignatureCollector:
    """Paginates getSignaturesForAddress and filters by time window"""

    def __init__(self, rpc_client, page_limit: int = 1000):
        """
        Args:
            rpc_client: Anything with an async get_signatures_for_address(address, before, limit)
            page_limit: Signatures requested per page
        """
        self.rpc_client = rpc_client
        self.page_limit = page_limit

    async def collect(self, address: str, start_time: int, end_time: int) -> List[SignatureRecord]:
        """
        Collect signatures with start_time <= blockTime <= end_time

        Pages are newest-first, so the walk stops as soon as a page's oldest
        entry precedes start_time. Fetch errors propagate to the caller.

        Returns:
            Matching records in descending time order
        """
        collected: List[SignatureRecord] = []
        before: Optional[str] = None
        pages = 0

        while True:
            page = await self.rpc_client.get_signatures_for_address(
                address,
                before=before,
                limit=self.page_limit
            )
            if not page:
                break

            pages += 1
            metrics.increment_counter("signature_pages")

            records = [SignatureRecord.from_rpc(entry) for entry in page]
            in_window = [r for r in records if r.in_window(start_time, end_time)]
            collected.extend(in_window)

            oldest = records[-1]
            logger.debug(
                "signature_page_fetched",
                page=pages,
                size=len(records),
                in_window=len(in_window),
                oldest_block_time=oldest.block_time
            )

            # Unknown block time on the page boundary counts as before the window
            if oldest.block_time is None or oldest.block_time < start_time:
                break

            before = oldest.signature

        logger.info(
            "signatures_collected",
            address=address,
            pages=pages,
            signatures=len(collected)
        )
        return collected
