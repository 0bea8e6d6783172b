"""Tunable constants for the horse, jockey and trainer scores."""

# ──────────────────────────────────────────────
# Recent performance
# ──────────────────────────────────────────────
RECENT_RACE_COUNT = 5
RECENT_RACE_WEIGHTS = (0.35, 0.25, 0.20, 0.12, 0.08)

# (max finish position, score); anything worse (or unrecorded) scores FINISH_SCORE_FLOOR
FINISH_POSITION_SCORES = ((1, 100.0), (2, 80.0), (3, 65.0), (5, 45.0), (8, 25.0))
FINISH_SCORE_FLOOR = 10.0

# Beating the market's expectation is rewarded more than missing it is punished
POPULARITY_BONUS_PER_PLACE = 3.0
POPULARITY_PENALTY_PER_PLACE = 1.5

# ──────────────────────────────────────────────
# Venue / track condition aptitude
# ──────────────────────────────────────────────
APTITUDE_WIN_WEIGHT = 60.0
APTITUDE_PLACE_WEIGHT = 40.0
APTITUDE_NO_DATA_SCORE = 50.0

# (min runs, multiplier) checked in order
HORSE_VENUE_RELIABILITY = ((5, 1.0), (3, 0.9), (2, 0.8))
HORSE_VENUE_RELIABILITY_FLOOR = 0.6

# ──────────────────────────────────────────────
# Distance aptitude
# ──────────────────────────────────────────────
DISTANCE_WINDOW_M = 300
DISTANCE_CLOSE_WIN_WINDOW_M = 100
DISTANCE_CLOSE_WIN_BONUS = 10.0

# ──────────────────────────────────────────────
# Closing speed (last 3 furlongs / 600m)
# ──────────────────────────────────────────────
LAST_3F_BASELINE_SECONDS = 37.0
LAST_3F_SPREAD_SECONDS = 4.0
LAST_3F_FALLBACK_TOP3_WEIGHT = 80.0
LAST_3F_FALLBACK_BASE = 20.0

# ──────────────────────────────────────────────
# G1 achievement
# ──────────────────────────────────────────────
G1_FINISH_SCORES = ((1, 40.0), (2, 25.0), (3, 18.0), (5, 10.0))
G1_FINISH_FLOOR = 3.0
G1_NO_HISTORY_SCORE = 30.0

# ──────────────────────────────────────────────
# Rotation (days between runs)
# ──────────────────────────────────────────────
ROTATION_OPTIMAL_MIN_DAYS = 21
ROTATION_OPTIMAL_MAX_DAYS = 70

# ──────────────────────────────────────────────
# Gate draw
# ──────────────────────────────────────────────
POST_POSITION_SCORES = {1: 100.0, 2: 95.0, 3: 90.0, 4: 85.0, 5: 70.0, 6: 65.0, 7: 60.0, 8: 55.0}
POST_POSITION_DEFAULT = 50.0

# ──────────────────────────────────────────────
# Jockey
# ──────────────────────────────────────────────
JOCKEY_WEIGHTS = {"venue": 0.30, "venue_g1": 0.30, "overall": 0.20, "trainer_combo": 0.20}
JOCKEY_VENUE_RELIABILITY = ((50, 1.0), (20, 0.9), (10, 0.8))
JOCKEY_VENUE_RELIABILITY_FLOOR = 0.6
JOCKEY_VENUE_FALLBACK_RATIO = 0.75
JOCKEY_G1_FALLBACK_RATIO = 0.5
JOCKEY_COMBO_MIN_RUNS = 3
JOCKEY_COMBO_DEFAULT = 50.0

# ──────────────────────────────────────────────
# G1 / graded reliability (jockey venue-G1 and trainer)
# ──────────────────────────────────────────────
G1_RELIABILITY = ((10, 1.0), (5, 0.9))
G1_RELIABILITY_FLOOR = 0.7

# ──────────────────────────────────────────────
# Trainer
# ──────────────────────────────────────────────
TRAINER_G1_WEIGHT = 0.6
TRAINER_GRADED_WEIGHT = 0.4
TRAINER_GRADED_DEFAULT = 30.0
TRAINER_G1_FALLBACK_RATIO = 0.5


def reliability(runs: int, table: tuple[tuple[int, float], ...], floor: float) -> float:
    """Sample-size multiplier: first (min_runs, factor) whose threshold ``runs`` meets."""
    for min_runs, factor in table:
        if runs >= min_runs:
            return factor
    return floor


def step_score(position: int, table: tuple[tuple[int, float], ...], floor: float) -> float:
    """Look up a finish position in a (max position, score) step table."""
    for max_pos, score in table:
        if position <= max_pos:
            return score
    return floor
