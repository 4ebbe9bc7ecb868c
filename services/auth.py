"""
Mock phone sign-in: request a code, type it back, get a user.
No SMS goes anywhere; the code comes from config.
"""

from typing import Optional

from config import config
from constants import AuthStates
from logging_config import get_logger
from models.user import UserModel
from services.identity import UserRegistry
from utils.dates import utcnow

logger = get_logger("auth")


class AuthSession:
    def __init__(self, registry: UserRegistry, verification_code: Optional[str] = None):
        self.registry = registry
        self._code = verification_code or config.VERIFICATION_CODE
        self.state = AuthStates.UNKNOWN
        self.phone_number: Optional[str] = None
        self.user: Optional[UserModel] = None
        self.verification_code = ""
        self.requested_at = None
        self.restore()

    def restore(self) -> None:
        # Nothing is persisted between runs, so there is never a session to pick up
        if self.state == AuthStates.UNKNOWN:
            self.state = AuthStates.UNAUTHENTICATED

    @property
    def is_authenticated(self) -> bool:
        return self.state == AuthStates.AUTHENTICATED

    @property
    def current_user(self) -> Optional[UserModel]:
        return self.user if self.is_authenticated else None

    def request_verification(self, phone_number: str) -> None:
        self.phone_number = phone_number.strip()
        self.verification_code = self._code
        self.requested_at = utcnow()
        self.user = None
        self.state = AuthStates.VERIFYING
        logger.info("Verification requested", extra={"data": {"phone": self.phone_number}})

    def verify_code(self, code: str) -> bool:
        if self.state != AuthStates.VERIFYING or code != self.verification_code:
            logger.warning("Verification failed", extra={"data": {"state": self.state}})
            return False

        user = self.registry.find_by_phone(self.phone_number)
        if user is None:
            user = self.registry.register(UserModel(name="New User", phone_number=self.phone_number))
        self.user = user
        self.state = AuthStates.AUTHENTICATED
        logger.info("User authenticated", extra={"data": {"user_id": user.id}})
        return True

    def update_user_name(self, name: str) -> Optional[UserModel]:
        if not self.is_authenticated:
            return None
        return self.registry.rename(self.user.id, name)

    def sign_out(self) -> None:
        self.state = AuthStates.UNAUTHENTICATED
        self.user = None
        self.phone_number = None
        self.verification_code = ""
        self.requested_at = None
