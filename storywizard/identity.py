"""Account registry and the current session identity.

Accounts live under the global `storywizard-users` key as StoredUser records
(bcrypt password hash included); the session identity lives under
`storywizard-user` as a plain User. Emails are matched case-insensitively and
the user id is derived from the lower-cased email, so it is stable across
logins and usable as a storage namespace.

Listeners registered with subscribe() are called after every successful
login, signup and logout; per-user stores rebuild themselves from there.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable

import bcrypt

from storywizard.models import StoredUser, User
from storywizard.storage import SESSION_KEY, USERS_KEY, KeyValueStore

logger = logging.getLogger(__name__)

IdentityListener = Callable[[User | None], None]

TEMP_MAIL_DOMAINS = frozenset({
    "10minutemail.com",
    "temp-mail.org",
    "guerrillamail.com",
    "mailinator.com",
    "throwawaymail.com",
    "getairmail.com",
    "yopmail.com",
})


class IdentityError(Exception):
    """Base class for user-facing identity failures."""


class InvalidCredentials(IdentityError):
    def __init__(self) -> None:
        super().__init__("Invalid email or password.")


class DuplicateAccount(IdentityError):
    def __init__(self) -> None:
        super().__init__("An account with this email already exists.")


class DisposableEmail(IdentityError):
    def __init__(self) -> None:
        super().__init__("Temporary email addresses are not allowed.")


def is_temp_mail(email: str) -> bool:
    """True if the email's domain is a known throw-away mail provider."""
    _, _, domain = email.partition("@")
    if not domain:
        return False
    return domain.strip().lower() in TEMP_MAIL_DOMAINS


def user_id_for(email: str) -> str:
    """Stable, storage-key-safe id derived from an email address."""
    raw = email.strip().lower().encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


class IdentityStore:
    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv
        self._listeners: list[IdentityListener] = []
        self.error: str | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def user(self) -> User | None:
        raw = self._kv.get(SESSION_KEY, None)
        if not raw:
            return None
        return User.model_validate(raw)

    def _accounts(self) -> list[StoredUser]:
        return [StoredUser.model_validate(u) for u in self._kv.get(USERS_KEY, [])]

    def _find_account(self, email: str) -> StoredUser | None:
        wanted = email.strip().lower()
        for account in self._accounts():
            if account.email.lower() == wanted:
                return account
        return None

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a listener for identity changes. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_session(self, user: User | None) -> None:
        self._kv.set(SESSION_KEY, user.model_dump() if user else None)
        for listener in list(self._listeners):
            listener(user)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> User:
        self.error = None
        account = self._find_account(email)
        if account is None or not verify_password(password, account.password_hash):
            err = InvalidCredentials()
            self.error = str(err)
            logger.info("login failed for unknown account or bad password")
            raise err
        user = account.public()
        self._set_session(user)
        logger.info("login user=%s", user.id)
        return user

    def signup(self, email: str, password: str, name: str | None = None) -> User:
        self.error = None
        email = email.strip()
        try:
            if self._find_account(email) is not None:
                raise DuplicateAccount()
            if is_temp_mail(email):
                raise DisposableEmail()
        except IdentityError as e:
            self.error = str(e)
            raise

        account = StoredUser(
            id=user_id_for(email),
            email=email,
            name=name or "",
            password_hash=hash_password(password),
        )
        accounts = self._accounts()
        accounts.append(account)
        self._kv.set(USERS_KEY, [a.model_dump() for a in accounts])

        user = account.public()
        self._set_session(user)
        logger.info("signup user=%s", user.id)
        return user

    def logout(self) -> None:
        previous = self.user
        self._set_session(None)
        if previous is not None:
            logger.info("logout user=%s", previous.id)
