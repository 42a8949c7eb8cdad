"""Core application constants."""

# Time constants
MILLISECONDS_PER_SECOND = 1000
SECONDS_PER_DAY = 86_400

# Display formats for dates on views and documents
DATE_FORMAT_FULL = "%d %B %Y"  # 31 December 2026
DATE_FORMAT_SHORT = "%d %b %Y"  # 31 Dec 2026
DATE_FORMAT_LONG = "%A, %B %d, %Y"  # Thursday, December 31, 2026
