"""
Unit tests for Signature Collector (core/signature_collector.py)

Tests:
- Window filtering
- Pagination cursor handling
- Early termination once a page precedes the window
- Error propagation
"""

import pytest

from mint_tracker.clients.solana_rpc import RPCError
from mint_tracker.core.signature_collector import SignatureCollector
from mint_tracker.core.metrics import get_metrics


START = 1000
END = 2000


def history(make_signature, block_times):
    """Newest-first history with signatures sig-<index>"""
    return [make_signature(f"sig-{i}", t) for i, t in enumerate(block_times)]


@pytest.mark.asyncio
async def test_empty_history(fake_rpc, candy_machine):
    client = fake_rpc()
    collector = SignatureCollector(client)

    result = await collector.collect(candy_machine, START, END)

    assert result == []
    assert client.page_requests == [None]


@pytest.mark.asyncio
async def test_filters_to_inclusive_window(fake_rpc, make_signature, candy_machine):
    """Boundary timestamps are kept, everything outside dropped"""
    client = fake_rpc(history=history(make_signature, [2500, 2000, 1500, 1000, 999]))
    collector = SignatureCollector(client)

    result = await collector.collect(candy_machine, START, END)

    assert [r.signature for r in result] == ["sig-1", "sig-2", "sig-3"]
    assert all(START <= r.block_time <= END for r in result)


@pytest.mark.asyncio
async def test_paginates_with_oldest_signature_as_cursor(fake_rpc, make_signature, candy_machine):
    client = fake_rpc(history=history(make_signature, [1900, 1800, 1700, 1600, 1500]))
    collector = SignatureCollector(client, page_limit=2)

    result = await collector.collect(candy_machine, START, END)

    assert [r.signature for r in result] == ["sig-0", "sig-1", "sig-2", "sig-3", "sig-4"]
    # Third page has one entry, fourth is empty
    assert client.page_requests == [None, "sig-1", "sig-3", "sig-4"]


@pytest.mark.asyncio
async def test_stops_when_page_precedes_window(fake_rpc, make_signature, candy_machine):
    """No page after the one whose oldest entry is before start_time"""
    client = fake_rpc(history=history(make_signature, [3000, 1500, 900, 800, 700, 600]))
    collector = SignatureCollector(client, page_limit=3)

    result = await collector.collect(candy_machine, START, END)

    assert [r.signature for r in result] == ["sig-1"]
    assert client.page_requests == [None]


@pytest.mark.asyncio
async def test_straddling_page_does_not_stop_early(fake_rpc, make_signature, candy_machine):
    """A page whose oldest entry is inside the window keeps paginating"""
    client = fake_rpc(history=history(make_signature, [2500, 2100, 1200, 1100, 500]))
    collector = SignatureCollector(client, page_limit=3)

    result = await collector.collect(candy_machine, START, END)

    assert [r.signature for r in result] == ["sig-2", "sig-3"]
    assert client.page_requests == [None, "sig-2"]


@pytest.mark.asyncio
async def test_page_entirely_after_window_continues(fake_rpc, make_signature, candy_machine):
    client = fake_rpc(history=history(make_signature, [5000, 4000, 3000, 1500]))
    collector = SignatureCollector(client, page_limit=2)

    result = await collector.collect(candy_machine, START, END)

    assert [r.signature for r in result] == ["sig-3"]
    assert len(client.page_requests) == 3


@pytest.mark.asyncio
async def test_null_block_time_excluded(fake_rpc, make_signature, candy_machine):
    client = fake_rpc(history=[
        make_signature("sig-0", 1800),
        make_signature("sig-1", None),
        make_signature("sig-2", 1700),
    ])
    collector = SignatureCollector(client)

    result = await collector.collect(candy_machine, START, END)

    assert [r.signature for r in result] == ["sig-0", "sig-2"]


@pytest.mark.asyncio
async def test_null_block_time_on_page_boundary_stops(fake_rpc, make_signature, candy_machine):
    client = fake_rpc(history=[
        make_signature("sig-0", 1800),
        make_signature("sig-1", None),
        make_signature("sig-2", 1700),
    ])
    collector = SignatureCollector(client, page_limit=2)

    result = await collector.collect(candy_machine, START, END)

    assert [r.signature for r in result] == ["sig-0"]
    assert client.page_requests == [None]


@pytest.mark.asyncio
async def test_failed_signatures_still_collected(fake_rpc, make_signature, candy_machine):
    """Collection only filters by time; failed transactions are dropped later"""
    client = fake_rpc(history=[make_signature("sig-0", 1500, err={"InstructionError": [0, "Custom"]})])
    collector = SignatureCollector(client)

    result = await collector.collect(candy_machine, START, END)

    assert len(result) == 1
    assert result[0].err == {"InstructionError": [0, "Custom"]}


@pytest.mark.asyncio
async def test_page_error_propagates(fake_rpc, candy_machine):
    client = fake_rpc(page_error=RPCError("getSignaturesForAddress", "rate limited", 429))
    collector = SignatureCollector(client)

    with pytest.raises(RPCError, match="rate limited"):
        await collector.collect(candy_machine, START, END)


@pytest.mark.asyncio
async def test_counts_pages(fake_rpc, make_signature, candy_machine):
    client = fake_rpc(history=history(make_signature, [1900, 1800, 1700]))
    collector = SignatureCollector(client, page_limit=2)

    await collector.collect(candy_machine, START, END)

    assert get_metrics().get_counter("signature_pages") == 2
