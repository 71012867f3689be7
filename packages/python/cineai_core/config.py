import os
from pathlib import Path


# Weight configuration
WEIGHTS_CONFIG_PATH = Path(
    os.environ.get("CINEAI_WEIGHTS_CONFIG", "config/recommender-weights.json")
)
WEIGHTS_CACHE_TTL_S = 5 * 60  # hot reload window

# Scoring
TOP_RATED_CUTOFF = 8.0  # 0-10 scale
POPULARITY_ANCHOR = 31.0  # ~P99 TMDB movie popularity, used with log1p
RECENCY_HALF_LIFE_YEARS = 4.0
RECENT_RELEASE_YEARS = 1

# Behavioral analysis
ABANDONED_AFTER_DAYS = 30
IMPULSE_WATCH_DAYS = 2
VELOCITY_WINDOW_DAYS = 28
MIN_DIRECTOR_RATINGS = 2
MIN_GENRE_ADDS = 3
LOYALTY_MIN_AVERAGE = 4.0
TOP_GENRES_N = 5
AFFINITY_WINDOW_DAYS = 90
AFFINITY_MAX_INTERACTIONS = 200
AFFINITY_TOP_GENRES = 3
AFFINITY_FULL_CONFIDENCE = 10  # genre hits in one hour slot

# Memory / novelty
NOVELTY_WINDOW_HOURS = 48
NOVELTY_MIN_GENRE_OVERLAP = 0.5
NOVELTY_PENALTY_MULTIPLIER = 0.8

# Engine
CANDIDATE_POOL_MULTIPLIER = 3
MIN_CANDIDATE_POOL = 30
