"""Security related functions."""

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError

from app.core.config import settings
from app.exceptions.base import UnauthenticatedError


class TokenVerifier:
    """
    Verifies bearer tokens issued by the identity provider.

    Tokens are JWTs signed with ``settings.secret_key``. Issuing them is the
    provider's concern; this class only checks signature and expiry and hands
    back the claims.

    :ivar secret_key: The key used to verify JWT signatures.
    :type secret_key: str
    :ivar algorithm: The signing algorithm accepted.
    :type algorithm: str
    """

    def __init__(self, secret_key: str | None = None, algorithm: str | None = None):
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm

    def verify_token(self, token: str) -> dict:
        """
        Decode ``token`` and return its payload.

        :param token: The JWT token to be verified.
        :return: The decoded claims.
        :raises UnauthenticatedError: If the token is expired, malformed or has no subject.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_aud": False, "require": ["sub"]},
            )
        except ExpiredSignatureError as e:
            raise UnauthenticatedError("Authentication token has expired") from e
        except InvalidTokenError as e:
            raise UnauthenticatedError("Authentication invalid") from e
        return payload
