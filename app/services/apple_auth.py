"""
Sign in with Apple identity token verification.

Apple signs identity tokens with RS256 keys published as a JWKS document.
PyJWT's ``PyJWKClient`` fetches and caches that key set, and refetches it
once when a token names an unknown ``kid``.
"""
from dataclasses import dataclass
from typing import Optional
import logging
import jwt
from jwt.exceptions import PyJWKClientConnectionError
from app.core.config import settings
from app.core.exceptions import InvalidCredential

logger = logging.getLogger(__name__)


@dataclass
class AppleIdentity:
    """Verified claims from an Apple identity token."""
    sub: str
    email: Optional[str] = None


class AppleTokenVerifier:
    """Verifies Apple identity tokens against the configured audience."""

    def __init__(
        self,
        client_id: str = None,
        keys_url: str = None,
        issuer: str = None,
        cache_seconds: int = None,
    ):
        self.client_id = client_id or settings.APPLE_CLIENT_ID
        self.issuer = issuer or settings.APPLE_ISSUER
        self.jwk_client = jwt.PyJWKClient(
            keys_url or settings.APPLE_KEYS_URL,
            cache_jwk_set=True,
            lifespan=cache_seconds if cache_seconds is not None else settings.APPLE_KEYS_CACHE_SECONDS,
        )

    def verify(self, identity_token: str) -> AppleIdentity:
        """
        Verify signature, expiry, audience and issuer of an identity token.

        Raises:
            InvalidCredential: on any verification failure
        """
        try:
            signing_key = self.jwk_client.get_signing_key_from_jwt(identity_token)
            claims = jwt.decode(
                identity_token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self.client_id,
                issuer=self.issuer,
            )
        except PyJWKClientConnectionError as e:
            logger.error("Failed to fetch Apple public keys: %s", e)
            raise InvalidCredential("Invalid Apple identity token")
        except jwt.PyJWTError as e:
            logger.info("Apple identity token rejected: %s", e)
            raise InvalidCredential("Invalid Apple identity token")

        sub = claims.get("sub")
        if not sub:
            raise InvalidCredential("Invalid Apple identity token")
        return AppleIdentity(sub=sub, email=claims.get("email"))


_default_verifier: Optional[AppleTokenVerifier] = None


def get_apple_verifier() -> AppleTokenVerifier:
    """Dependency returning the shared verifier (and its key cache)."""
    global _default_verifier
    if _default_verifier is None:
        _default_verifier = AppleTokenVerifier()
    return _default_verifier
