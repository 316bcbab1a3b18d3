"""
DigiLocker PKCE flow controller.

``initiate`` and ``callback`` are served by two independent HTTP requests that
may land on different process instances; the only state shared between them is
the :class:`AuthSession` persisted under the state token.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlencode

from docverify.clients.digilocker import (
    DigiLockerClient,
    derive_code_challenge,
    generate_code_verifier,
    generate_state_token,
)
from docverify.clients.session_store import AuthSessionStore, ResultSessionStore
from docverify.clients.user_records import UserRecordRepository
from docverify.core.config import OAuthSettings
from docverify.core.errors import (
    InputError,
    SessionNotFound,
    UpstreamError,
    VerificationError,
)
from docverify.schemas import (
    AuthSession,
    CallbackOutcome,
    DocumentType,
    LockerMatchReport,
    LockerSnapshot,
    ResultSession,
)
from docverify.schemas.verification import AadhaarData, DrivingLicenceData, PanCardData
from docverify.services.flow_state import (
    TERMINAL_STATUS,
    LockerFlow,
    LockerFlowState,
    LockerRetryPolicy,
    RetryState,
)
from docverify.services.reconciliation import match_locker_records
from docverify.services.token_cipher import LockerTokenCipher

logger = logging.getLogger(__name__)

ISSUED_DOCTYPES = {
    "DRVLC": (DocumentType.DL, DrivingLicenceData),
    "PANCR": (DocumentType.PAN, PanCardData),
    "ADHAR": (DocumentType.AADHAAR, AadhaarData),
}

_STATUS_MESSAGES = {
    LockerFlowState.RETRY_PENDING: (
        "No issued documents found. Please fetch them in the DigiLocker app and retry."
    ),
    LockerFlowState.MANUAL_REQUIRED: (
        "No issued documents found in DigiLocker. Please upload your documents manually."
    ),
}


def extract_doc_number(uri: Any, doctype: str) -> Optional[str]:
    """Derive a document number from an ``<issuer>-<doctype>-<number>`` URI."""
    if not isinstance(uri, str) or not uri:
        return None
    separator = f"-{doctype}-"
    if separator in uri:
        return uri.split(separator, 1)[1]
    return uri.rsplit("-", 1)[-1]


def documents_from_issued(items: Iterable[Dict[str, Any]]) -> list:
    """Map issued-document records onto typed identity data, last one wins per type."""
    by_type: dict = {}
    for item in items:
        if not isinstance(item, dict):
            continue
        doctype = item.get("doctype")
        if not isinstance(doctype, str) or doctype not in ISSUED_DOCTYPES:
            continue
        document_type, model = ISSUED_DOCTYPES[doctype]
        by_type[document_type] = model(number=extract_doc_number(item.get("uri"), doctype))
    return list(by_type.values())


def render_deep_link(outcome: CallbackOutcome, default_url: str) -> str:
    """Build the custom-scheme URL that resumes the mobile client."""
    params = {"status": outcome.status}
    if outcome.session_id:
        params["sessionId"] = outcome.session_id
    if outcome.error:
        params["error"] = outcome.error
    if outcome.message:
        params["message"] = outcome.message
    base = outcome.callback_url or default_url
    joiner = "&" if "?" in base else "?"
    return f"{base}{joiner}{urlencode(params)}"


class DigiLockerFlowController:
    """Drive authorize, callback, token exchange and document fetch."""

    def __init__(
        self,
        *,
        client: DigiLockerClient,
        auth_sessions: AuthSessionStore,
        result_sessions: ResultSessionStore,
        users: UserRecordRepository,
        token_cipher: LockerTokenCipher,
        oauth_settings: OAuthSettings,
        retry_policy: Optional[LockerRetryPolicy] = None,
    ) -> None:
        self._client = client
        self._auth_sessions = auth_sessions
        self._result_sessions = result_sessions
        self._users = users
        self._cipher = token_cipher
        self._oauth = oauth_settings
        self._policy = retry_policy or LockerRetryPolicy(oauth_settings.max_locker_retries)

    @property
    def default_deep_link(self) -> str:
        return self._oauth.deep_link_url

    def initiate(self, user_id: Optional[str], callback_url: Optional[str] = None) -> str:
        """Persist a pending authorization and return the DigiLocker consent URL."""
        if not user_id:
            raise InputError("User ID is required")
        if callback_url and not self._oauth.allows_callback_url(callback_url):
            logger.warning("Rejected callbackUrl for user %s: %s", user_id, callback_url)
            raise InputError("callbackUrl is not an allowed app deep link")

        state = generate_state_token()
        code_verifier = generate_code_verifier()
        session = AuthSession(
            state=state,
            code_verifier=code_verifier,
            user_id=user_id,
            callback_url=callback_url or self._oauth.deep_link_url,
        )
        self._auth_sessions.sweep()
        self._auth_sessions.put(state, session, self._oauth.state_ttl_seconds)
        logger.info("Initiated DigiLocker authorization for user %s", user_id)
        return self._client.build_authorization_url(
            state=state, code_challenge=derive_code_challenge(code_verifier)
        )

    async def callback(
        self,
        *,
        code: Optional[str],
        state: Optional[str],
        provider_error: Optional[str] = None,
        provider_error_description: Optional[str] = None,
    ) -> CallbackOutcome:
        """Complete the browser leg of the flow. Never raises; errors become outcomes."""
        if provider_error:
            logger.warning("DigiLocker returned error on callback: %s", provider_error)
            return self._error(provider_error, provider_error_description)
        if not code or not state:
            return self._error("missing_params", "Missing code or state.")

        flow = LockerFlow()
        try:
            session = self._consume(state, flow)
        except SessionNotFound as exc:
            return self._error("session_expired", str(exc), flow=flow)

        try:
            return await self._complete(session, code, flow)
        except UpstreamError as exc:
            logger.error("Token exchange failed for user %s: %s", session.user_id, exc)
            return self._error(
                "token_exchange_failed", "Token exchange failed.", session=session, flow=flow
            )
        except InputError as exc:
            return self._error("invalid_user", str(exc), session=session, flow=flow)

    async def exchange(self, *, code: Optional[str], state: Optional[str]) -> CallbackOutcome:
        """Same flow as :meth:`callback` for clients that relay the code themselves."""
        if not code or not state:
            raise InputError("Missing code or state")
        flow = LockerFlow()
        session = self._consume(state, flow)
        return await self._complete(session, code, flow)

    def read_result(self, session_id: Optional[str]) -> ResultSession:
        """Hand out a completed result exactly once."""
        result = self._result_sessions.get_and_delete(session_id or "")
        if result is None:
            raise SessionNotFound("Session invalid or expired")
        try:
            access_token = self._cipher.unseal(result.access_token)
        except ValueError as exc:
            raise SessionNotFound("Session could not be decoded") from exc
        return result.model_copy(update={"access_token": access_token})

    def match_locker_records(self, user_id: str, snapshot: LockerSnapshot) -> LockerMatchReport:
        user = self._users.get(user_id)
        report = match_locker_records(
            declared_license=user.license_number,
            declared_pan=user.pan_number,
            snapshot=snapshot,
        )
        logger.info(
            "Locker record match for user %s: dl=%s pan=%s",
            user_id,
            report.dl_matched,
            report.pan_matched,
        )
        return report

    def _consume(self, state: str, flow: LockerFlow) -> AuthSession:
        session = self._auth_sessions.get_and_delete(state)
        if session is None:
            flow.advance(LockerFlowState.FAILED)
            raise SessionNotFound("Session expired or invalid state. Please try again.")
        return session

    async def _complete(self, session: AuthSession, code: str, flow: LockerFlow) -> CallbackOutcome:
        try:
            access_token = await self._client.exchange_authorization_code(
                code=code, code_verifier=session.code_verifier
            )
            user = self._users.get(session.user_id)
        except VerificationError:
            flow.advance(LockerFlowState.FAILED)
            raise

        user.access_token_encrypted = self._cipher.seal(access_token)
        self._users.save(user)
        flow.advance(LockerFlowState.TOKEN_EXCHANGED)

        snapshot = LockerSnapshot()
        try:
            profile = await self._client.fetch_profile(access_token)
        except UpstreamError as exc:
            logger.warning("DigiLocker profile fetch failed for %s: %s", user.user_id, exc)
        else:
            snapshot.name = profile.get("name")
            snapshot.date_of_birth = profile.get("dob")

        try:
            issued = await self._client.fetch_issued_documents(access_token)
        except UpstreamError as exc:
            # The stored token is kept; the client simply receives no numbers.
            logger.warning("DigiLocker document fetch failed for %s: %s", user.user_id, exc)
            flow.advance(LockerFlowState.VERIFIED)
            return self._deliver(session, access_token, snapshot, flow)
        flow.advance(LockerFlowState.DOCUMENTS_FETCHED)

        next_state, retry_state = self._policy.on_documents(
            RetryState(user.retry_count, user.locker_status),
            documents_found=bool(issued),
        )
        user.retry_count = retry_state.retry_count
        user.locker_status = retry_state.locker_status
        self._users.save(user)
        flow.advance(next_state)

        flow.require_terminal()
        if next_state is not LockerFlowState.VERIFIED:
            logger.info(
                "No issued documents for user %s; outcome %s (retry_count=%d)",
                user.user_id,
                next_state.value,
                user.retry_count,
            )
            return CallbackOutcome(
                status=TERMINAL_STATUS[next_state],
                message=_STATUS_MESSAGES[next_state],
                callback_url=session.callback_url,
                flow_state=flow.state.value,
            )

        snapshot.documents = documents_from_issued(issued)
        return self._deliver(session, access_token, snapshot, flow)

    def _deliver(
        self,
        session: AuthSession,
        access_token: str,
        snapshot: LockerSnapshot,
        flow: LockerFlow,
    ) -> CallbackOutcome:
        flow.require_terminal()
        session_id = generate_state_token()
        self._result_sessions.put(
            session_id,
            ResultSession(
                session_id=session_id,
                access_token=self._cipher.seal(access_token),
                extracted_data=snapshot,
            ),
            self._oauth.result_ttl_seconds,
        )
        logger.info(
            "DigiLocker flow for user %s finished with %d document(s)",
            session.user_id,
            len(snapshot.documents),
        )
        return CallbackOutcome(
            status=TERMINAL_STATUS[flow.state],
            session_id=session_id,
            callback_url=session.callback_url,
            flow_state=flow.state.value,
        )

    def _error(
        self,
        error: str,
        message: Optional[str],
        *,
        session: Optional[AuthSession] = None,
        flow: Optional[LockerFlow] = None,
    ) -> CallbackOutcome:
        return CallbackOutcome(
            status="error",
            error=error,
            message=message,
            callback_url=session.callback_url if session else self._oauth.deep_link_url,
            flow_state=flow.state.value if flow else LockerFlowState.FAILED.value,
        )


__all__ = [
    "DigiLockerFlowController",
    "documents_from_issued",
    "extract_doc_number",
    "render_deep_link",
]
