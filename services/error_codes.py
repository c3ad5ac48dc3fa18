"""
Standard error codes for the service layer.

These let callers handle specific failures without parsing message text.

Usage:
    from services.error_codes import INSUFFICIENT_PLAYERS
    from services.result import Result

    return Result.fail("Not enough players", code=INSUFFICIENT_PLAYERS)
"""

# General errors
VALIDATION_ERROR = "validation_error"

# Selection errors
INSUFFICIENT_PLAYERS = "insufficient_players"
INSUFFICIENT_ROLE_COMPOSITION = "insufficient_role_composition"
INVALID_CONFIG = "invalid_config"

# Rating errors
INVALID_RESULT = "invalid_result"
