"""Engine constants and defaults."""

# Win-rate variance per trial (std dev in percentage points) and clamp bounds
EQUITY_WIN_RATE_STD = 2.0
EQUITY_WIN_RATE_BOUNDS = (1.0, 99.0)

CHALLENGE_WIN_RATE_STD = 4.5
CHALLENGE_WIN_RATE_BOUNDS = (5.0, 95.0)

RUIN_WIN_RATE_STD = 3.0
RUIN_WIN_RATE_BOUNDS = (1.0, 99.0)

# Challenge simulator
DEFAULT_CHALLENGE_TRIALS = 2000
MAX_CHALLENGE_DAYS = 1000
MAX_CHALLENGE_STEPS = 3
TRADING_DAYS_PER_WEEK = 5
# Keeps exp(-trades_per_week / 5) well above float underflow in the daily trade draw
MAX_TRADES_PER_WEEK = 500
CALENDAR_DAYS_PER_TRADING_DAY = 1.4

# Risk of ruin
RUIN_TRIALS = 5000
RUIN_TRADE_HORIZON = 1000
RUIN_START_CAPITAL = 10000.0
RUIN_THRESHOLD_FRACTION = 0.10

# Closed-form analytics
STREAK_PROBABILITY_CAP = 99.99
DEFAULT_STREAK_LENGTHS = (3, 4, 5, 6, 7, 8, 10, 12)
DEFAULT_RECOVERY_LEVELS = (10, 20, 30, 40, 50, 60, 70, 80, 90)

# Percentile bands for equity fan charts
EQUITY_PERCENTILES = (5, 25, 50, 75, 95)
