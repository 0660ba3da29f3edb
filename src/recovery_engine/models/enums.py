"""Enumerations and physiological constants for the recovery engine.

All thresholds and constants cite their published research source where one
exists. Values without a citation are engineering choices and are documented
as such.
"""

import math
from enum import Enum, IntEnum, auto


class Priority(IntEnum):
    """Rule priority tiers, lower value = higher priority.

    SAFETY rules decide the risk zone whenever they fire.
    """

    SAFETY = 0
    RECOVERY = 1
    PERFORMANCE = 2
    CONTEXT = 3


class MuscleCategory(str, Enum):
    """Coarse body region used for recovery-rate calibration."""

    UPPER = "upper"
    LOWER = "lower"


class MuscleGroup(str, Enum):
    """Primary muscle groups a TrainingEvent can touch."""

    CHEST = "chest"
    BACK = "back"
    SHOULDERS = "shoulders"
    BICEPS = "biceps"
    TRICEPS = "triceps"
    FOREARMS = "forearms"
    TRAPS = "traps"
    ABS = "abs"
    LOWER_BACK = "lower_back"
    QUADS = "quads"
    HAMSTRINGS = "hamstrings"
    GLUTES = "glutes"
    CALVES = "calves"

    @property
    def category(self) -> MuscleCategory:
        return MUSCLE_CATEGORIES[self]


class RiskZone(str, Enum):
    """ACWR-derived injury-risk zone, Gabbett (2016)."""

    UNDERTRAINING = "undertraining"
    OPTIMAL = "optimal"
    CAUTION = "caution"
    HIGH_RISK = "high-risk"
    INSUFFICIENT_DATA = "insufficient_data"

    @property
    def severity(self) -> int:
        return _ZONE_SEVERITY[self]


class RecoveryStatus(str, Enum):
    """Three-bucket muscle recovery classification for UI consumption."""

    READY = "ready"
    PARTIALLY_RECOVERED = "partially_recovered"
    NOT_READY = "not_ready"


class SFRZone(str, Enum):
    """Stimulus-to-fatigue efficiency bands."""

    EXCELLENT = "excellent"
    ACCEPTABLE = "acceptable"
    JUNK_VOLUME = "junk_volume"


class AcwrMethod(IntEnum):
    """How acute and chronic loads are aggregated."""

    ROLLING = auto()  # Rolling window sums (Hulin et al. 2016)
    EWMA = auto()  # Exponentially weighted (Williams et al. 2017)


class ConfidenceLevel(str, Enum):
    """Qualitative band for a calibrated parameter."""

    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class SnapshotSource(IntEnum):
    """Where a ReadinessSnapshot came from."""

    COMPUTED = auto()
    FALLBACK = auto()  # Upstream failed; last known snapshot returned
    NO_HISTORY = auto()


MUSCLE_CATEGORIES: dict[MuscleGroup, MuscleCategory] = {
    MuscleGroup.CHEST: MuscleCategory.UPPER,
    MuscleGroup.BACK: MuscleCategory.UPPER,
    MuscleGroup.SHOULDERS: MuscleCategory.UPPER,
    MuscleGroup.BICEPS: MuscleCategory.UPPER,
    MuscleGroup.TRICEPS: MuscleCategory.UPPER,
    MuscleGroup.FOREARMS: MuscleCategory.UPPER,
    MuscleGroup.TRAPS: MuscleCategory.UPPER,
    MuscleGroup.ABS: MuscleCategory.UPPER,
    MuscleGroup.LOWER_BACK: MuscleCategory.LOWER,
    MuscleGroup.QUADS: MuscleCategory.LOWER,
    MuscleGroup.HAMSTRINGS: MuscleCategory.LOWER,
    MuscleGroup.GLUTES: MuscleCategory.LOWER,
    MuscleGroup.CALVES: MuscleCategory.LOWER,
}

_ZONE_SEVERITY: dict[RiskZone, int] = {
    RiskZone.INSUFFICIENT_DATA: 0,
    RiskZone.OPTIMAL: 1,
    RiskZone.UNDERTRAINING: 2,
    RiskZone.CAUTION: 3,
    RiskZone.HIGH_RISK: 4,
}

# ---------------------------------------------------------------------------
# Workload (ACWR): Hulin et al. (2016), Gabbett (2016) Br J Sports Med 50(5)
# ---------------------------------------------------------------------------
ACUTE_WINDOW_DAYS = 7
CHRONIC_WINDOW_DAYS = 28
CHRONIC_WEEKS = CHRONIC_WINDOW_DAYS / ACUTE_WINDOW_DAYS  # weekly-equivalent divisor
MIN_CHRONIC_HISTORY_DAYS = 14  # Ratio undefined below two weeks of history
CHRONIC_LOAD_EPSILON = 1e-6

ACWR_UNDERTRAINING = 0.8  # Below this = insufficient stimulus
ACWR_CAUTION = 1.3  # Upper bound of the "sweet spot"
ACWR_HIGH_RISK = 1.5  # 2-4x injury risk above this ratio

# Training monotony: Foster (1998), Med Sci Sports Exerc 30(7)
MONOTONY_WARNING = 2.0

# ---------------------------------------------------------------------------
# Fitness-fatigue impulse response: Banister et al. (1975), Busso (2003)
# ---------------------------------------------------------------------------
TAU_FITNESS_DAYS = 7.0
TAU_FATIGUE_DAYS = 2.0
K_FITNESS = 1.0
K_FATIGUE = 2.0  # Fatigue responds more strongly to a single impulse
DEFAULT_PERFORMANCE_BASELINE = 0.0

# Impulse weighting (engineering choice, tunable via ImpulseWeights)
IMPULSE_VOLUME_NORMALIZER = 1000.0
DEFAULT_RPE = 7.0  # Assumed effort for unrated sets
RPE_MULTIPLIER_FLOOR = 0.1
RPE_MULTIPLIER_CEILING = 1.5
ECCENTRIC_MULTIPLIER = 1.15  # Eccentric emphasis, Hyldahl & Hubal (2014)
BALLISTIC_MULTIPLIER = 1.10

# ---------------------------------------------------------------------------
# Muscle recovery: Schoenfeld & Grgic (2018), Damas et al. (2016)
# ---------------------------------------------------------------------------
DEFAULT_RECOVERY_HOURS: dict[MuscleCategory, float] = {
    MuscleCategory.UPPER: 48.0,
    MuscleCategory.LOWER: 72.0,
}
MAX_MUSCLE_FATIGUE = 100.0
FULL_RECOVERY_THRESHOLD = 5.0  # 5% of a fully fatigued baseline
# A fully fatigued muscle reaches the threshold exactly at its recovery hours.
RECOVERY_DECAY_LOG_RATIO = math.log(MAX_MUSCLE_FATIGUE / FULL_RECOVERY_THRESHOLD)
FATIGUE_VOLUME_REFERENCE = 10000.0  # 10 sets x 10 reps x 100 lb at RPE 10 = 100 fatigue
READY_FATIGUE_MAX = 25.0  # <= 25 remaining fatigue -> ready
PARTIAL_FATIGUE_MAX = 60.0  # <= 60 -> partially recovered, above -> not ready
MUSCLE_HISTORY_HORIZON_DAYS = 14  # Contributions older than this are negligible

# Per-muscle recovery speed relative to the category's recovery hours.
# Chest and quads are the reference muscles of their categories.
MUSCLE_RECOVERY_SCALE: dict[MuscleGroup, float] = {
    MuscleGroup.CHEST: 1.0,
    MuscleGroup.BACK: 1.2,
    MuscleGroup.SHOULDERS: 0.7,
    MuscleGroup.BICEPS: 0.5,
    MuscleGroup.TRICEPS: 0.6,
    MuscleGroup.FOREARMS: 0.4,
    MuscleGroup.TRAPS: 1.75,
    MuscleGroup.ABS: 0.5,
    MuscleGroup.LOWER_BACK: 1.2,
    MuscleGroup.QUADS: 1.0,
    MuscleGroup.HAMSTRINGS: 1.1,
    MuscleGroup.GLUTES: 0.9,
    MuscleGroup.CALVES: 0.35,
}

# Share of an event's fatigue carried over to synergists and stabilisers
# it does not list as trained. Trained muscle -> {affected muscle: fraction}.
SPILLOVER: dict[MuscleGroup, dict[MuscleGroup, float]] = {
    MuscleGroup.CHEST: {
        MuscleGroup.SHOULDERS: 0.4,
        MuscleGroup.TRICEPS: 0.5,
        MuscleGroup.BACK: 0.15,
        MuscleGroup.ABS: 0.2,
    },
    MuscleGroup.BACK: {
        MuscleGroup.BICEPS: 0.45,
        MuscleGroup.SHOULDERS: 0.35,
        MuscleGroup.TRAPS: 0.5,
        MuscleGroup.FOREARMS: 0.3,
        MuscleGroup.LOWER_BACK: 0.25,
        MuscleGroup.ABS: 0.2,
    },
    MuscleGroup.SHOULDERS: {
        MuscleGroup.CHEST: 0.35,
        MuscleGroup.TRICEPS: 0.45,
        MuscleGroup.TRAPS: 0.5,
        MuscleGroup.BACK: 0.25,
    },
    MuscleGroup.BICEPS: {
        MuscleGroup.FOREARMS: 0.6,
        MuscleGroup.BACK: 0.2,
        MuscleGroup.TRICEPS: 0.1,
    },
    MuscleGroup.TRICEPS: {
        MuscleGroup.CHEST: 0.3,
        MuscleGroup.SHOULDERS: 0.35,
        MuscleGroup.BICEPS: 0.1,
        MuscleGroup.FOREARMS: 0.25,
    },
    MuscleGroup.FOREARMS: {
        MuscleGroup.BICEPS: 0.15,
        MuscleGroup.TRICEPS: 0.1,
        MuscleGroup.BACK: 0.2,
    },
    MuscleGroup.TRAPS: {
        MuscleGroup.BACK: 0.8,
        MuscleGroup.SHOULDERS: 0.35,
        MuscleGroup.LOWER_BACK: 0.6,
        MuscleGroup.FOREARMS: 0.4,
    },
    MuscleGroup.ABS: {
        MuscleGroup.LOWER_BACK: 0.5,
        MuscleGroup.QUADS: 0.15,
    },
    MuscleGroup.LOWER_BACK: {
        MuscleGroup.GLUTES: 0.4,
        MuscleGroup.HAMSTRINGS: 0.35,
        MuscleGroup.ABS: 0.5,
        MuscleGroup.BACK: 0.35,
    },
    MuscleGroup.QUADS: {
        MuscleGroup.GLUTES: 0.55,
        MuscleGroup.HAMSTRINGS: 0.4,
        MuscleGroup.ABS: 0.3,
        MuscleGroup.LOWER_BACK: 0.35,
        MuscleGroup.CALVES: 0.25,
    },
    MuscleGroup.GLUTES: {
        MuscleGroup.HAMSTRINGS: 0.7,
        MuscleGroup.QUADS: 0.45,
        MuscleGroup.LOWER_BACK: 0.5,
        MuscleGroup.ABS: 0.35,
    },
    MuscleGroup.HAMSTRINGS: {
        MuscleGroup.GLUTES: 0.75,
        MuscleGroup.QUADS: 0.35,
        MuscleGroup.LOWER_BACK: 0.45,
        MuscleGroup.CALVES: 0.3,
    },
    MuscleGroup.CALVES: {
        MuscleGroup.HAMSTRINGS: 0.2,
        MuscleGroup.QUADS: 0.15,
    },
}

# ---------------------------------------------------------------------------
# Stimulus-to-fatigue ratio: Israetel et al. (2019), Helms et al. (2018)
# ---------------------------------------------------------------------------
PROXIMITY_WEIGHT_NEAR_FAILURE = 1.0  # RPE >= 9
PROXIMITY_WEIGHT_MODERATE = 0.7  # RPE 7-8.5
PROXIMITY_WEIGHT_FAR = 0.4  # RPE < 7
SFR_EXCELLENT = 200.0
SFR_JUNK = 50.0
SFR_LOCAL_COMPOUNDING = 0.5  # Extra cost per unit of pre-existing local fatigue
SFR_SYSTEMIC_COMPOUNDING = 0.25  # Extra cost per unit of normalised systemic fatigue
SYSTEMIC_FATIGUE_REFERENCE = 20.0  # Banister fatigue treated as "fully loaded"

# ---------------------------------------------------------------------------
# Calibration: Gelman & Hill (2006), McElreath (2020)
# ---------------------------------------------------------------------------
MIN_SESSIONS_FOR_CALIBRATION = 5
RECOVERY_HOURS_PRIOR_SD = 12.0
RECOVERY_HOURS_OBSERVATION_SD = 18.0
RECOVERY_HOURS_BOUNDS = (12.0, 168.0)
FATIGUE_RESISTANCE_PRIOR = 50.0
FATIGUE_RESISTANCE_PRIOR_SD = 15.0
FATIGUE_RESISTANCE_OBSERVATION_SD = 20.0
RESISTANCE_POINTS_PER_PCT_ERROR = 5.0  # +1% e1RM beyond prediction = +5 points
PERFORMANCE_TO_E1RM_PCT = 0.5  # 1 unit of Banister performance ~ 0.5% e1RM
CONFIDENCE_SESSION_SCALE = 20.0
EXERCISE_SHRINKAGE_K = 10.0  # n / (n + k) weight on exercise-specific data
EXERCISE_FACTOR_BOUNDS = (0.5, 2.0)
OBSERVATION_MIN_GAP_DAYS = 1
OBSERVATION_MAX_GAP_DAYS = 14
ADAPTIVE_TAU_MIN_CONFIDENCE = 0.5
CALIBRATION_STALE_AFTER_DAYS = 7

# ---------------------------------------------------------------------------
# Context modifiers: Halson (2014), Dattilo et al. (2011), Kreher (2012)
# ---------------------------------------------------------------------------
CONTEXT_LOOKBACK_DAYS = 3
CONTEXT_MODIFIER_BOUNDS = (0.55, 1.2)
SLEEP_OPTIMAL_HOURS = (8.0, 9.0)
SLEEP_GOOD_HOURS = 7.0
SLEEP_SUBOPTIMAL_HOURS = 6.0
SLEEP_POOR_HOURS = 5.0
