"""Fill in missing corpus embeddings.

Usage:
    python -m app.scripts.backfill_embeddings
    python -m app.scripts.backfill_embeddings --source-prefix homewyse-scraper/ --limit 100
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from app.core.database import db_client
from app.core.exceptions import BackfillAbortedError
from app.core.gateways import create_embedding_gateway
from app.services.indexing.embedding_backfill_service import BackfillReport, EmbeddingBackfillJob
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate embeddings for cost documents that do not have one yet"
    )
    parser.add_argument(
        "--source-prefix",
        default=None,
        help="Only process documents whose source starts with this prefix (e.g. homewyse-scraper/)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Process at most this many documents",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Seconds to wait between documents (default: BACKFILL_DELAY_SECONDS)",
    )
    return parser


async def run_backfill(
    source_prefix: Optional[str] = None,
    limit: Optional[int] = None,
    delay_seconds: Optional[float] = None,
) -> BackfillReport:
    job = EmbeddingBackfillJob(
        session_factory=db_client.session,
        embedding_gateway=create_embedding_gateway(),
        database_probe=db_client.ping,
        delay_seconds=delay_seconds,
    )
    try:
        return await job.run(source_prefix=source_prefix, limit=limit)
    finally:
        await db_client.disconnect()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.limit is not None and args.limit < 1:
        LOGGER.error("--limit must be at least 1")
        return 2
    if args.delay is not None and args.delay < 0:
        LOGGER.error("--delay must not be negative")
        return 2

    try:
        report = asyncio.run(run_backfill(args.source_prefix, args.limit, args.delay))
    except BackfillAbortedError as e:
        LOGGER.error(f"Embedding backfill aborted: {e}")
        return 1

    LOGGER.info(
        f"Processed {report.candidates} documents: {report.succeeded} succeeded, {report.failed} failed"
    )
    LOGGER.info(
        f"Corpus: {report.total_documents} documents, {report.with_embeddings} with embeddings, "
        f"{report.missing} still missing"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
