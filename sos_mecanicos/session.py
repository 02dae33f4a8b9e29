"""
Session state of the authenticated caller and the auth event stream.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from sos_mecanicos.models.profile import Profile, UserRole

logger = logging.getLogger(__name__)


class AuthEvent(str, enum.Enum):
    SIGNED_UP = "SIGNED_UP"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"
    USER_UPDATED = "USER_UPDATED"


@dataclass(frozen=True)
class SessionState:
    user_id: int
    email: str
    display_name: str
    role: UserRole

    @property
    def dashboard_path(self) -> str:
        return f"/dashboard/{self.role.value}"

    @classmethod
    def from_profile(cls, profile: Profile) -> "SessionState":
        return cls(
            user_id=profile.id,
            email=profile.email,
            display_name=profile.full_name,
            role=profile.role,
        )

    def as_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "display_name": self.display_name,
            "role": self.role,
            "dashboard_path": self.dashboard_path,
        }


Listener = Callable[[AuthEvent, Optional[SessionState]], None]


class AuthEvents:
    """Process-wide registry of auth event subscribers."""

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: AuthEvent, state: Optional[SessionState]) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, state)
            except Exception:
                # one broken subscriber must not fail the auth call
                logger.exception("Auth event listener failed for %s", event.value)


auth_events = AuthEvents()


def log_auth_event(event: AuthEvent, state: Optional[SessionState]) -> None:
    if state is None:
        logger.info("Auth event %s", event.value)
    else:
        logger.info("Auth event %s for user %s (%s)", event.value, state.user_id, state.role.value)
