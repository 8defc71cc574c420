"""Provider that fetches secrets from Infisical using Universal Auth."""

import time
import logging
import threading
from typing import Any, Callable, Dict, NamedTuple, Optional

import requests
from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .._types import AuthenticationFailed, EnvDict, FetchFailed, InvalidResponse

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/v1/auth/universal-auth/login"
SECRETS_PATH = "/api/v3/secrets/raw"

# Tokens are treated as expired this many seconds early
TOKEN_EXPIRY_MARGIN = 60
DEFAULT_CACHE_TTL = 300.0

class InfisicalSettings(BaseSettings):
    """Infisical connection settings read from INFISICAL_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="INFISICAL_")

    url: str = "https://app.infisical.com"
    client_id: str
    client_secret: SecretStr
    project_id: str
    environment: str
    secret_path: str = "/"
    cache_ttl: float = DEFAULT_CACHE_TTL

class _AccessToken(NamedTuple):
    token: str
    expiry: float

class _SecretCache(NamedTuple):
    values: EnvDict
    expiry: float

class InfisicalProvider:
    """
    Provider for secrets stored in an Infisical project.

    The access token and the fetched secret set are cached with
    independent lifetimes. Calls into one instance are serialized, so
    concurrent callers share a single authentication and fetch.
    """

    def __init__(
        self,
        url: str,
        client_id: str,
        client_secret: str,
        project: str,
        environment: str,
        secret_path: str = "/",
        cache_ttl: float = DEFAULT_CACHE_TTL,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            url: Infisical API URL, e.g. "https://app.infisical.com"
            client_id: Universal Auth client ID
            client_secret: Universal Auth client secret
            project: Project (workspace) ID to fetch secrets from
            environment: Environment slug, e.g. "dev" or "prod"
            secret_path: Secret folder path
            cache_ttl: Seconds a fetched secret set stays fresh
            session: HTTP session to use (a new one by default)
            timeout: Per-request timeout passed to requests
            clock: Time source returning epoch seconds
        """
        self.url = url[:-1] if url.endswith("/") else url
        self.client_id = client_id
        self._client_secret = client_secret
        self.project = project
        self.environment = environment
        self.secret_path = secret_path
        self.cache_ttl = cache_ttl
        self.timeout = timeout
        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()
        self._clock = clock

        self._token: Optional[_AccessToken] = None
        self._cache: Optional[_SecretCache] = None
        self._lock = threading.RLock()

    @classmethod
    def from_settings(cls, settings: Optional[InfisicalSettings] = None, **kwargs) -> "InfisicalProvider":
        """Create a provider from InfisicalSettings (read from the environment by default)."""
        if settings is None:
            settings = InfisicalSettings()

        return cls(
            url=settings.url,
            client_id=settings.client_id,
            client_secret=settings.client_secret.get_secret_value(),
            project=settings.project_id,
            environment=settings.environment,
            secret_path=settings.secret_path,
            cache_ttl=settings.cache_ttl,
            **kwargs
        )

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._fetch_secrets_if_needed().get(key)

    def get_all(self) -> EnvDict:
        with self._lock:
            return dict(self._fetch_secrets_if_needed())

    def clear_cache(self) -> None:
        """Drop the cached secrets, forcing a fetch on next access."""
        with self._lock:
            self._cache = None
        logger.debug("Cleared Infisical secret cache")

    def refresh_token(self) -> None:
        """Discard the access token and authenticate again."""
        with self._lock:
            self._token = None
            self._get_access_token()

    def close(self) -> None:
        """Release the HTTP session if this provider created it."""
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "InfisicalProvider":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _fetch_secrets_if_needed(self) -> EnvDict:
        cache = self._cache
        if cache is not None and self._clock() < cache.expiry:
            logger.debug("Infisical secret cache hit")
            return cache.values

        logger.debug("Infisical secret cache miss")
        secrets = self._fetch_secrets()
        self._cache = _SecretCache(secrets, self._clock() + self.cache_ttl)
        return secrets

    def _get_access_token(self) -> str:
        token = self._token
        if token is not None and self._clock() < token.expiry:
            return token.token

        return self._authenticate()

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise InvalidResponse(f"Request to {url} failed: {e}") from e

    def _decode(self, response: requests.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as e:
            raise InvalidResponse(f"Malformed JSON from Infisical API: {e}") from e
        if not isinstance(payload, dict):
            raise InvalidResponse("Unexpected JSON payload from Infisical API")
        return payload

    def _authenticate(self) -> str:
        login_url = f"{self.url}{LOGIN_PATH}"
        response = self._send(
            "POST",
            login_url,
            data={"clientId": self.client_id, "clientSecret": self._client_secret},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        if response.status_code != 200:
            raise AuthenticationFailed(response.status_code, response.text)

        payload = self._decode(response)
        try:
            access_token = payload["accessToken"]
            expires_in = int(payload["expiresIn"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidResponse(f"Malformed authentication response: {e}") from e
        if not isinstance(access_token, str) or not access_token:
            raise InvalidResponse("Malformed authentication response: accessToken is not a string")

        self._token = _AccessToken(access_token, self._clock() + expires_in - TOKEN_EXPIRY_MARGIN)
        logger.info(f"Authenticated with Infisical at {self.url} (expires in {expires_in}s)")
        return access_token

    def _fetch_secrets(self) -> EnvDict:
        token = self._get_access_token()

        response = self._send(
            "GET",
            f"{self.url}{SECRETS_PATH}",
            params={
                "workspaceId": self.project,
                "environment": self.environment,
                "secretPath": self.secret_path,
            },
            headers={"Authorization": f"Bearer {token}"},
        )

        if response.status_code != 200:
            raise FetchFailed(response.status_code, response.text)

        payload = self._decode(response)
        secrets: EnvDict = {}
        try:
            for secret in payload["secrets"]:
                key, value = secret["secretKey"], secret["secretValue"]
                if not isinstance(key, str) or not isinstance(value, str):
                    raise InvalidResponse(f"Malformed secrets response: non-string entry for {key!r}")
                secrets[key] = value
        except (KeyError, TypeError) as e:
            raise InvalidResponse(f"Malformed secrets response: {e}") from e

        logger.info(f"Fetched {len(secrets)} secrets from Infisical ({self.environment}{self.secret_path})")
        return secrets

    def __repr__(self) -> str:
        return f"InfisicalProvider(url={self.url!r}, project={self.project!r}, environment={self.environment!r})"
