import logging
from typing import List, Optional

import httpx

from kollector.core.config import settings
from kollector.core.exceptions import UnauthorizedError
from kollector.schemas.user import GoogleIdentity

logger = logging.getLogger(__name__)

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
INVALID_TOKEN_MESSAGE = "Invalid Google token"


class GoogleTokenValidator:
    """Validates Google ID tokens against Google's token-info endpoint."""

    def __init__(
        self,
        audiences: Optional[List[str]] = None,
        tokeninfo_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.audiences = audiences if audiences is not None else settings.google_audiences
        self.tokeninfo_url = tokeninfo_url or settings.GOOGLE_TOKENINFO_URL
        self._transport = transport

    async def validate(self, id_token: str) -> GoogleIdentity:
        if not id_token or not id_token.strip():
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE)

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=10.0) as client:
                response = await client.get(self.tokeninfo_url, params={"id_token": id_token})
        except httpx.RequestError as e:
            logger.warning(f"Could not reach Google token info endpoint: {e}")
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE)

        if response.status_code != 200:
            logger.warning(f"Google rejected ID token with status {response.status_code}")
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE)

        claims = response.json()
        if claims.get("aud") not in self.audiences:
            logger.warning(f"Google ID token has unexpected audience {claims.get('aud')}")
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE)
        if claims.get("iss") and claims["iss"] not in GOOGLE_ISSUERS:
            logger.warning(f"Google ID token has unexpected issuer {claims['iss']}")
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE)
        if not claims.get("sub") or not claims.get("email"):
            raise UnauthorizedError(INVALID_TOKEN_MESSAGE)

        return GoogleIdentity(sub=claims["sub"], email=claims["email"], name=claims.get("name"))


# Dependency
def get_google_token_validator() -> GoogleTokenValidator:
    return GoogleTokenValidator()
