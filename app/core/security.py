import abc
import hmac
import logging

from app.core.config import Settings
from app.core.exceptions import Unauthorized

logger = logging.getLogger(__name__)


class TokenValidator(abc.ABC):
    """Authorizes a stamp-add request from the token printed in the QR code."""

    @abc.abstractmethod
    def is_valid(self, presented_token: str | None) -> bool:
        ...

    def authorize(self, presented_token: str | None) -> bool:
        """Return True or raise Unauthorized."""
        if not self.is_valid(presented_token):
            logger.warning("Rejected stamp request with invalid QR token")
            raise Unauthorized()
        return True


class StaticSecretValidator(TokenValidator):
    """Single shared secret, compared by exact string equality.

    No rotation, expiry or replay protection: anyone holding the printed code
    can stamp any identifier, bounded only by the cooldown. A rotating signed
    token would be another TokenValidator subclass.
    """

    def __init__(self, secret: str):
        if not secret:
            logger.warning("QR_SECRET is not set - every stamp request will be rejected")
        self._secret = secret

    def is_valid(self, presented_token: str | None) -> bool:
        if not self._secret or presented_token is None:
            return False
        return hmac.compare_digest(str(presented_token).encode(), self._secret.encode())


def create_token_validator(settings: Settings) -> TokenValidator:
    return StaticSecretValidator(settings.qr_secret)
