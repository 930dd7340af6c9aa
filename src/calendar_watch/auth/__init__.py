"""Authentication module.

Exchanges the configured refresh token for short-lived access tokens.
Obtaining the refresh token in the first place (the consent flow) is done
once, out of band.
"""

from calendar_watch.auth.google import GoogleOAuth, GoogleTokens, TokenExchangeError

__all__ = [
    "GoogleOAuth",
    "GoogleTokens",
    "TokenExchangeError",
]
