"""Constants for adios.

This module centralizes default values used throughout the application.
"""

# Meeting length limit applied when neither the meeting nor its owner sets one
DEFAULT_MAX_MEETING_LENGTH_MINUTES = 40

# Access tokens are treated as expired this long before their real expiry
ACCESS_TOKEN_EXPIRY_BUFFER_SECONDS = 60
