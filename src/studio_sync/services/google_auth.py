"""
Google service-account authentication.

Builds a short-lived JWT bearer assertion signed with the service account's
private key and exchanges it at the OAuth token endpoint for an access token.
Tokens are not cached: every provisioning, sync or purge run acquires its own.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import httpx
from google.auth import crypt, jwt

from studio_sync.utils.config import get_config, parse_service_credential, unescape_private_key
from studio_sync.utils.exceptions import APIError, AuthenticationError, ConfigurationError
from studio_sync.utils.logger import get_logger
from studio_sync.utils.retry import RetryConfig, RetryExhaustedError, retry_async


logger = get_logger(__name__)


JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME = 3600


@dataclass(frozen=True)
class AccessToken:
    """Bearer token returned by the token endpoint."""
    
    token: str
    expires_at: datetime
    
    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at


class GoogleAuthService:
    """
    Acquires Google API access tokens for a service account.
    
    Example:
        auth = GoogleAuthService()
        token = auth.get_access_token()
    """
    
    def __init__(self, credential_info: Optional[Dict[str, Any]] = None,
                 token_uri: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the auth service.
        
        Args:
            credential_info: Parsed service account JSON. Loaded from settings if None.
            token_uri: Token endpoint. Defaults to the configured endpoint.
            transport: Optional httpx transport (tests inject a mock transport).
        """
        self.config = get_config()
        self._credential_info = credential_info
        self.token_uri = token_uri or self.config.google_token_uri
        self._transport = transport
    
    @property
    def credential_info(self) -> Dict[str, Any]:
        if self._credential_info is None:
            self._credential_info = self.config.load_service_credential()
        else:
            self._credential_info = parse_service_credential_dict(self._credential_info)
        return self._credential_info
    
    def _signer(self) -> crypt.RSASigner:
        """Load the RSA signer; a malformed credential is a configuration error."""
        try:
            return crypt.RSASigner.from_service_account_info(self.credential_info)
        except (ValueError, TypeError, KeyError) as e:
            raise ConfigurationError(f"Service account private key is invalid: {e}")
    
    def build_assertion(self, scopes: Sequence[str],
                        signer: Optional[crypt.RSASigner] = None,
                        now: Optional[int] = None) -> str:
        """
        Build the signed JWT assertion.
        
        Args:
            scopes: OAuth scopes requested
            signer: Pre-loaded signer (loaded from the credential if None)
            now: Issue time as a Unix timestamp (current time if None)
            
        Returns:
            Compact-serialized signed JWT.
        """
        signer = signer or self._signer()
        issued_at = int(now if now is not None else time.time())
        
        payload = {
            "iss": self.credential_info["client_email"],
            "scope": " ".join(scopes),
            "aud": self.token_uri,
            "iat": issued_at,
            "exp": issued_at + ASSERTION_LIFETIME,
        }
        
        assertion = jwt.encode(signer, payload)
        return assertion.decode("utf-8") if isinstance(assertion, bytes) else assertion
    
    async def _exchange(self, assertion: str, timeout: float) -> AccessToken:
        """POST the assertion to the token endpoint."""
        async with httpx.AsyncClient(transport=self._transport, timeout=timeout) as client:
            response = await client.post(
                self.token_uri,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
            )
        
        try:
            data = response.json()
        except ValueError:
            data = {"text": response.text}
        
        if not response.is_success:
            raise APIError(
                f"Token endpoint returned {response.status_code}",
                status_code=response.status_code,
                response_data=data,
            )
        
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise APIError("Token response did not contain access_token", response_data=data)
        
        expires_in = int(data.get("expires_in", ASSERTION_LIFETIME))
        return AccessToken(
            token=token,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        )
    
    async def acquire_access_token(self, scopes: Optional[Sequence[str]] = None,
                                   timeout: Optional[float] = None,
                                   max_retries: Optional[int] = None,
                                   retry_delay: Optional[float] = None) -> AccessToken:
        """
        Acquire an access token, retrying transient failures.
        
        Args:
            scopes: OAuth scopes (configured scopes if None)
            timeout: Per-attempt timeout in seconds
            max_retries: Total number of attempts
            retry_delay: Delay unit; attempt N waits ``retry_delay * N`` before the next
            
        Returns:
            AccessToken
            
        Raises:
            ConfigurationError: Credential missing or malformed (no retry).
            AuthenticationError: All attempts failed.
        """
        requested: List[str] = list(scopes or self.config.google_scopes)
        retry_config = RetryConfig(
            max_retries=max_retries or self.config.google_auth_max_retries,
            base_delay=self.config.google_auth_retry_delay if retry_delay is None else retry_delay,
            timeout=timeout or self.config.google_auth_timeout,
        )
        
        signer = self._signer()
        
        async def attempt() -> AccessToken:
            assertion = self.build_assertion(requested, signer=signer)
            return await self._exchange(assertion, retry_config.timeout)
        
        logger.info(f"Requesting Google access token for {self.credential_info['client_email']}")
        
        try:
            token = await retry_async(attempt, retry_config, operation="Google token exchange")
        except RetryExhaustedError as e:
            logger.error(f"Google Auth failed after {e.attempts} attempts: {e.last_error}")
            raise AuthenticationError(
                f"Google Auth failed after {e.attempts} attempts. Last error: {e.last_error}",
                attempts=e.attempts,
                last_error=e.last_error,
            ) from e.last_error
        
        logger.info("Google access token acquired")
        return token
    
    def get_access_token(self, **kwargs) -> AccessToken:
        """Synchronous wrapper for callers without a running event loop."""
        return asyncio.run(self.acquire_access_token(**kwargs))


def parse_service_credential_dict(info: Any) -> Dict[str, Any]:
    """Validate an already-parsed credential the same way a JSON document is validated."""
    if isinstance(info, (str, bytes)):
        return parse_service_credential(info)
    if not isinstance(info, dict):
        raise ConfigurationError("Service account credential must be a JSON object")
    missing = [key for key in ("client_email", "private_key") if not info.get(key)]
    if missing:
        raise ConfigurationError(
            "Service account credential is missing required fields",
            {"missing": missing}
        )
    return dict(info, private_key=unescape_private_key(info["private_key"]))
