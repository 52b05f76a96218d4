"""Shared constants for the tracking engine.

Centralizes values used by the recording, extremum and query logic so we can
document and adjust them in one place.
"""

# Mean Earth radius in meters (haversine)
EARTH_RADIUS_M = 6371000.0

# Minimum distance from the last recorded fix before a new one is persisted
MIN_RECORD_DISTANCE_M = 5.0

# Foreground recording cadence (seconds)
RECORDING_INTERVAL_S = 60.0

# Extremum notifications are batched into one alert per window (seconds)
NOTIFICATION_WINDOW_S = 3600.0

# Largest page the record store hands back per query
PAGE_SIZE = 400

# Fixed identity of the one min/max row per installation
MINMAX_RECORD_ID = "minmax-singleton"

# Tracked channels, in the order events are reported
CHANNELS = ("altitude", "latitude", "longitude", "speed")

# Convenience query windows (seconds)
DAY_S = 24 * 60 * 60
WEEK_S = 7 * DAY_S

# FIT files store positions in semicircles
SEMICIRCLES_TO_DEGREES = 180 / 2**31
