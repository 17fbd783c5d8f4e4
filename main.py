"""Entry point: wires all components and starts the gRPC server."""

from __future__ import annotations

import logging
import signal
import sys
from concurrent import futures

import grpc

import config
from shopreco.catalogue import ProductCatalogue
from shopreco.engine import RecommendationEngine
from shopreco.preferences import PreferenceStore
from shopreco.service import RecommenderServicer, add_servicer_to_server
from shopreco.trending import TrendingAggregator

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_engine(
    catalogue: ProductCatalogue,
    trending: TrendingAggregator,
) -> RecommendationEngine:
    """Construct the engine with tunables taken from :mod:`config`."""
    return RecommendationEngine(
        catalogue=catalogue,
        preference_store=PreferenceStore(),
        trending=trending,
        half_life_seconds=config.PREFERENCE_HALF_LIFE_SECONDS,
        price_alpha=config.PRICE_AFFINITY_ALPHA,
        price_penalty=config.PRICE_PENALTY_LAMBDA,
        fallback=config.COLD_START_FALLBACK,
    )


def build_server(engine: RecommendationEngine) -> grpc.Server:
    """Construct and configure the gRPC server with all dependencies wired.

    Args:
        engine: The :class:`~shopreco.engine.RecommendationEngine`.

    Returns:
        A configured but not-yet-started :class:`grpc.Server`.
    """
    server = grpc.server(
        futures.ThreadPoolExecutor(max_workers=config.GRPC_MAX_WORKERS)
    )
    servicer = RecommenderServicer(engine=engine, default_count=config.NUM_RECOMMENDATIONS)
    add_servicer_to_server(servicer, server)
    server.add_insecure_port(
        f"{config.GRPC_SERVER_HOST}:{config.GRPC_SERVER_PORT}"
    )
    return server


def main() -> None:
    """Initialise all components and start the gRPC server.

    Startup sequence:
    1. Load the product catalogue from ``CATALOGUE_PATH``.
    2. Create the process-wide trending aggregator and its reset loop.
    3. Start the catalogue reload thread if enabled.
    4. Register ``SIGTERM``/``SIGINT`` shutdown handlers.
    5. Build and start the gRPC server.
    """
    logger.info("Loading product catalogue from %s…", config.CATALOGUE_PATH)
    catalogue = ProductCatalogue(
        path=config.CATALOGUE_PATH,
        refresh_interval_seconds=config.CATALOGUE_REFRESH_INTERVAL_SECONDS,
    )
    catalogue.refresh()
    if not len(catalogue):
        logger.warning("Catalogue is empty; every recommendation will be empty.")

    trending = TrendingAggregator(half_life_seconds=config.TRENDING_HALF_LIFE_SECONDS)
    trending.start_reset_loop(config.TRENDING_RESET_INTERVAL_SECONDS)

    if config.CATALOGUE_REFRESH_INTERVAL_SECONDS > 0:
        catalogue.start_refresh_loop()

    engine = build_engine(catalogue, trending)
    server = build_server(engine)

    def handle_shutdown(signum: int, frame: object) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, shutting down…", sig_name)
        server.stop(grace=5)
        sys.exit(0)

    signal.signal(signal.SIGTERM, handle_shutdown)
    signal.signal(signal.SIGINT, handle_shutdown)

    server.start()
    logger.info(
        "Recommender gRPC server listening on %s:%d",
        config.GRPC_SERVER_HOST,
        config.GRPC_SERVER_PORT,
    )
    server.wait_for_termination()


if __name__ == "__main__":
    main()
