"""Ingestion runner entry point.

Embeds every text/markdown file of the knowledge directory into the vector
store without going through the HTTP API.

Usage:
    python -m services.kb_ingest.kb_ingest [--reindex]
"""

import argparse
import asyncio
import sys

from services.kb_ingest.IngestService import IngestService
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.store.VectorStoreManager import VectorStoreManager
from shared.exceptions import BridgeError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest the knowledge directory into the vector store.")
    parser.add_argument(
        "--reindex",
        action="store_true",
        help="delete the stored chunks of every document before re-ingesting it",
    )
    return parser.parse_args(argv)


async def main(reindex: bool = False) -> int:
    """Run one ingestion.

    Args:
        reindex (bool): Purge each document's chunks before re-ingesting it.

    Returns:
        int: Process exit code, 0 on success and 1 on failure.
    """
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    try:
        embed_client = EmbedClientManager(helper_config=config).get_client()
        store = VectorStoreManager(helper_config=config).get_store()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    try:
        # embedding is required, there is no point in ingesting without it
        await embed_client.boot()
        if not await embed_client.do_healthcheck():
            logger.warning(f"Embed client {embed_client.get_engine_name()} did not pass the healthcheck, trying anyway.")

        service = IngestService(helper_config=config, store=store, embed_client=embed_client)
        summary = await service.do_ingest(reindex=reindex)
        logger.info("Ingestion summary: %s", summary.model_dump_json(by_alias=True), color="green")
        return 0
    except (BridgeError, ValueError) as e:
        logger.error(f"Ingestion failed: {e}")
        return 1
    finally:
        await embed_client.close()
        await store.close()


def run() -> None:
    """Console script entry point."""
    args = parse_args()
    sys.exit(asyncio.run(main(reindex=args.reindex)))


if __name__ == "__main__":
    run()
