"""Application configuration driven by environment variables.

All settings have sensible defaults for local development.
"""

import os

# ---------------------------------------------------------------------------
# gRPC server (the storefront connects to us on this address)
# ---------------------------------------------------------------------------

GRPC_SERVER_HOST: str = os.getenv("GRPC_SERVER_HOST", "0.0.0.0")
GRPC_SERVER_PORT: int = int(os.getenv("GRPC_SERVER_PORT", "50051"))

# Thread pool size for the gRPC server.  Each concurrent RPC occupies one
# thread, so this caps concurrent request handling.
GRPC_MAX_WORKERS: int = int(os.getenv("GRPC_MAX_WORKERS", "10"))

# ---------------------------------------------------------------------------
# Product catalogue
# ---------------------------------------------------------------------------

CATALOGUE_PATH: str = os.getenv("CATALOGUE_PATH", "data/products.json")

# How often (seconds) to re-read the catalogue file.  0 disables reloading.
CATALOGUE_REFRESH_INTERVAL_SECONDS: int = int(
    os.getenv("CATALOGUE_REFRESH_INTERVAL_SECONDS", "300")
)

# ---------------------------------------------------------------------------
# Preference profile
# ---------------------------------------------------------------------------

# Time constant of the exp(-dt / half_life) decay applied to affinities.
PREFERENCE_HALF_LIFE_SECONDS: float = float(
    os.getenv("PREFERENCE_HALF_LIFE_SECONDS", "3600")
)

# Smoothing factor of the price affinity moving average.
PRICE_AFFINITY_ALPHA: float = float(os.getenv("PRICE_AFFINITY_ALPHA", "0.3"))

# Weight of the price distance penalty when scoring items.
PRICE_PENALTY_LAMBDA: float = float(os.getenv("PRICE_PENALTY_LAMBDA", "0.5"))

# ---------------------------------------------------------------------------
# Recommendations and trending
# ---------------------------------------------------------------------------

NUM_RECOMMENDATIONS: int = 4       # slots in the storefront carousels

# "catalogue" or "trending": ordering used for sessions with no signal yet.
COLD_START_FALLBACK: str = os.getenv("COLD_START_FALLBACK", "catalogue")

TRENDING_HALF_LIFE_SECONDS: float = float(
    os.getenv("TRENDING_HALF_LIFE_SECONDS", "3600")
)

# How often (seconds) trending popularity is wiped.
TRENDING_RESET_INTERVAL_SECONDS: int = int(
    os.getenv("TRENDING_RESET_INTERVAL_SECONDS", "86400")
)
