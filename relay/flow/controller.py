"""Two-phase OAuth authorization-code flow.

``start_flow`` sends the user to the provider with a signed state;
``finish_flow`` handles the provider redirect, exchanges the code, and
issues our own session cookie so the provider is not consulted again
until the session expires.
"""

import logging
from datetime import UTC, datetime
from enum import StrEnum

import uuid_utils
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from relay.core.settings import OAuthSettings
from relay.crypto.keys import KeyStore
from relay.errors import (
    HTTP_INTERNAL_ERROR,
    UNKNOWN_ERROR_MESSAGE,
    AuthExpiredError,
    ClientInputError,
    RelayError,
    UnknownError,
    ValidationError,
)
from relay.flow.referer import get_referer
from relay.provider.client import ProviderClient, build_authorization_url
from relay.provider.scopes import apply_reconciled_scope
from relay.tokens.session import SessionToken
from relay.tokens.state import State

logger = logging.getLogger(__name__)

HTTP_TEMPORARY_REDIRECT = 307
MS_PER_SECOND = 1000

START_FAILED_MESSAGE = (
    "Something went wrong when trying to redirect you to start the OAuth "
    "login flow. Developers should check server logs."
)


class FlowStage(StrEnum):
    """Where an authorization attempt is when it succeeds or fails."""

    UNAUTHENTICATED = "unauthenticated"
    BUILDING_AUTH_REQUEST = "building_auth_request"
    REDIRECTED = "redirected"
    VALIDATING_STATE = "validating_state"
    EXCHANGING_CODE = "exchanging_code"
    FETCHING_USER_INFO = "fetching_user_info"
    ISSUING_SESSION = "issuing_session"
    AUTHENTICATED = "authenticated"


class FlowController:
    """Drives the provider handshake and owns the error boundary."""

    def __init__(
        self,
        settings: OAuthSettings,
        key_store: KeyStore,
        provider: ProviderClient,
    ) -> None:
        self._settings = settings
        self._key_store = key_store
        self._provider = provider

    def current_session(self, request: Request) -> SessionToken | None:
        """The caller's session if its cookie is ours and unexpired."""
        raw = request.cookies.get(self._settings.cookie_name)
        if not raw:
            return None
        public_key = self._key_store.get_or_init().public_key
        try:
            session = SessionToken.verify(raw, public_key)
        except AuthExpiredError:
            logger.warning("Ignoring expired session cookie")
            return None
        except ValidationError as e:
            logger.warning("Rejected a session cookie not signed by us: %s", e)
            return None
        if session.has_expired():
            return None
        return session

    async def start_flow(self, request: Request) -> Response:
        """Redirect to the provider, or straight back if already logged in."""
        flow_id = str(uuid_utils.uuid7())
        stage = FlowStage.UNAUTHENTICATED
        try:
            session = self.current_session(request)
            referer = get_referer(request)
            if session is not None:
                stage = FlowStage.AUTHENTICATED
                logger.info(
                    "Flow %s: %s already authenticated, skipping provider",
                    flow_id,
                    session.email,
                )
                return RedirectResponse(referer, status_code=HTTP_TEMPORARY_REDIRECT)

            stage = FlowStage.BUILDING_AUTH_REQUEST
            keys = self._key_store.get_or_init()
            state = State.create(referer, self._settings.state_ttl)
            url = build_authorization_url(
                self._provider.endpoints,
                self._settings.credentials(),
                scope=self._settings.scope,
                state=state.encrypt(keys.private_key),
            )
            stage = FlowStage.REDIRECTED
            logger.info(
                "Flow %s: redirecting to provider, return to %s", flow_id, referer
            )
            return RedirectResponse(url, status_code=HTTP_TEMPORARY_REDIRECT)
        except Exception as e:
            return _error_response(e, flow_id, stage, START_FAILED_MESSAGE)

    async def finish_flow(self, request: Request) -> Response:
        """Handle the provider redirect and issue the session cookie."""
        flow_id = str(uuid_utils.uuid7())
        stage = FlowStage.REDIRECTED
        try:
            code, raw_state = _require_params(request)

            stage = FlowStage.VALIDATING_STATE
            keys = self._key_store.get_or_init()
            state = _decode_state(raw_state, keys.public_key)

            stage = FlowStage.EXCHANGING_CODE
            token = await self._provider.exchange_code_for_token(
                code, self._settings.credentials()
            )
            apply_reconciled_scope(token, self._settings.scope)

            stage = FlowStage.FETCHING_USER_INFO
            user = await self._provider.fetch_user_info(token.access_token)

            stage = FlowStage.ISSUING_SESSION
            session = SessionToken.from_user_info(user, self._settings.session_ttl)
            response = RedirectResponse(
                state.referer, status_code=HTTP_TEMPORARY_REDIRECT
            )
            response.set_cookie(
                key=self._settings.cookie_name,
                value=session.sign(keys.private_key),
                httponly=False,
                secure=self._settings.is_production,
                path="/",
                expires=datetime.fromtimestamp(
                    session.expiration / MS_PER_SECOND, tz=UTC
                ),
            )

            stage = FlowStage.AUTHENTICATED
            logger.info(
                "Flow %s: %s authenticated with scope %r",
                flow_id,
                session.email,
                token.scope,
            )
            return response
        except Exception as e:
            return _error_response(e, flow_id, stage)


def _require_params(request: Request) -> tuple[str, str]:
    """Return ``(code, state)`` from the provider redirect."""
    params = request.query_params
    provider_error = params.get("error")
    if provider_error:
        raise ClientInputError(
            f"The provider did not grant authorization: {provider_error}"
        )
    code = params.get("code")
    if not code:
        raise ClientInputError(
            "No authorization code provided in request query parameters."
        )
    raw_state = params.get("state")
    if not raw_state:
        raise ClientInputError("No state provided in request query parameters.")
    return code, raw_state


def _decode_state(raw_state: str, public_key: str) -> State:
    try:
        state = State.decrypt(raw_state, public_key)
    except ValidationError as e:
        raise ValidationError(
            "Invalid state: it was not issued by this server or has been altered.",
            errors=e.errors,
        ) from e
    if state.has_expired():
        raise AuthExpiredError(
            "State has expired. Time limit between starting and finishing "
            "the login flow exceeded. Please try again."
        )
    return state


def _error_response(
    exc: Exception,
    flow_id: str,
    stage: FlowStage,
    public_message: str | None = None,
) -> Response:
    """Normalize any failure into ``{"error": message}`` and log its cause chain."""
    if isinstance(exc, RelayError):
        err = exc
    else:
        err = UnknownError(
            f"{type(exc).__name__}: {exc}",
            public_message=public_message or UNKNOWN_ERROR_MESSAGE,
        )
        err.__cause__ = exc
    level = logging.WARNING
    if err.status_code >= HTTP_INTERNAL_ERROR:
        level = logging.ERROR
    logger.log(
        level,
        "Flow %s failed while %s: %s %s",
        flow_id,
        stage,
        err.status_code,
        err,
        exc_info=exc,
    )
    return err.to_response()
