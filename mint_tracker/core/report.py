"""
CSV report and console summary
"""

import csv
import sys
from pathlib import Path
from typing import Iterable, List, TextIO, Optional

from mint_tracker.core.logger import get_logger
from mint_tracker.core.types import BotMint, ClassificationResult


logger = get_logger(__name__)

CSV_HEADER = ["Signature", "BotName", "Fee"]


def write_csv(rows: Iterable[BotMint], path: str) -> Path:
    """
    Write bot mints to a CSV file, replacing any existing file

    Args:
        rows: Bot-attributed transactions in classification order
        path: Output file path

    Returns:
        Path of the written file
    """
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with open(output_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f, lineterminator='\n')
        writer.writerow(CSV_HEADER)
        for mint in rows:
            writer.writerow(mint.to_row())
            count += 1

    logger.info("csv_written", path=str(output_path), rows=count)
    return output_path


def summary_lines(result: ClassificationResult) -> List[str]:
    """Per-bot mint counts in table order, then the unmarked count"""
    lines = [f"{name} Mints: {count}" for name, count in result.bot_counts.items()]
    lines.append(f"Unmarked Mints: {result.unmarked_count}")
    return lines


def print_summary(result: ClassificationResult, csv_path: str, stream: Optional[TextIO] = None) -> None:
    """Print the end-of-run report to stdout"""
    out = stream or sys.stdout
    print(f"CSV file created: {csv_path}", file=out)
    for line in summary_lines(result):
        print(line, file=out)
