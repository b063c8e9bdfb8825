"""Navigation gate for protected views.

    LOADING ──> CHECKING ──> AUTHENTICATED
       │            └──────> REDIRECT_TO_LOGIN
       └──────────────────> AUTHENTICATED

A guard lives for one navigation (one mount). It fires at most one refresh,
independently of the gateway's own refresh-and-retry.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Protocol

from renovator.client.exceptions import ClientError

logger = logging.getLogger(__name__)


class GuardState(str, enum.Enum):
    LOADING = "loading"
    CHECKING = "checking"
    AUTHENTICATED = "authenticated"
    REDIRECT_TO_LOGIN = "redirect_to_login"


TERMINAL_STATES = {GuardState.AUTHENTICATED, GuardState.REDIRECT_TO_LOGIN}


@dataclass(frozen=True)
class GuardDecision:
    state: GuardState
    redirect_to: str | None = None
    return_to: str | None = None

    @property
    def render_protected(self) -> bool:
        return self.state is GuardState.AUTHENTICATED


class AuthStatus(Protocol):
    is_loading: bool

    @property
    def is_authenticated(self) -> bool: ...

    async def refresh(self) -> None: ...


class RouteGuard:
    def __init__(self, auth: AuthStatus, location: str, login_path: str = "/login"):
        self.auth = auth
        self.location = location
        self.login_path = login_path
        self.has_attempted_refresh = False
        self._refreshing = False
        self._decision = GuardDecision(GuardState.LOADING)

    @property
    def state(self) -> GuardState:
        return self._decision.state

    def evaluate(self) -> GuardDecision:
        """Current decision from the auth status. No side effects."""
        if self._decision.state in TERMINAL_STATES:
            return self._decision

        if self.auth.is_loading:
            decision = GuardDecision(GuardState.LOADING)
        elif self.auth.is_authenticated:
            decision = GuardDecision(GuardState.AUTHENTICATED)
        elif self.has_attempted_refresh:
            decision = GuardDecision(
                GuardState.REDIRECT_TO_LOGIN,
                redirect_to=self.login_path,
                return_to=self.location,
            )
        else:
            decision = GuardDecision(GuardState.CHECKING)

        self._decision = decision
        return decision

    async def resolve(self) -> GuardDecision:
        """Advance the state machine, firing the single refresh if due.

        Call again whenever the auth status changes while LOADING.
        """
        decision = self.evaluate()
        if decision.state is not GuardState.CHECKING or self.has_attempted_refresh or self._refreshing:
            return decision

        self._refreshing = True
        try:
            await self.auth.refresh()
        except ClientError as e:
            logger.info(f"Token refresh failed in route guard: {e}")
        except Exception as e:
            # Any failure still has to end in a decision
            logger.exception(f"Unexpected error refreshing in route guard: {e}")
        finally:
            self._refreshing = False
            self.has_attempted_refresh = True

        return self.evaluate()
