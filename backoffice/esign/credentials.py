# backoffice/esign/credentials.py

"""
DocuSign service-account credentials.

Loaded once during application startup and handed to every DocuSign call
by reference. There is no module level cache and no reload.
"""

import base64
import binascii
from typing import Optional
from urllib.parse import urlsplit

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from jwt.algorithms import RSAAlgorithm
from jwt.exceptions import InvalidKeyError
from pydantic import BaseModel, ConfigDict

from backoffice.core.config import Settings
from backoffice.esign.exceptions import ConfigurationError
from backoffice.utils.logger import get_logger

logger = get_logger(__name__)

_rs256 = RSAAlgorithm(RSAAlgorithm.SHA256)

# setting attribute -> environment name
REQUIRED_SETTINGS = {
    "ds_integration_key": "DS_INTEGRATION_KEY",
    "ds_user_id": "DS_USER_ID",
    "ds_account_id": "DS_ACCOUNT_ID",
    "ds_auth_base_url": "DS_AUTH_BASE_URL",
    "ds_base_path": "DS_BASE_PATH",
    "ds_template_id": "DS_TEMPLATE_ID",
    "ds_private_key_base64": "DS_PRIVATE_KEY_BASE64",
}


class ProviderCredentials(BaseModel):
    """Immutable DocuSign integration settings with the parsed signing key."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    integration_key: str
    user_id: str
    account_id: str
    auth_base_url: str
    base_path: str
    template_id: str
    private_key: RSAPrivateKey
    timeout_seconds: float = 60.0

    @property
    def auth_host(self) -> str:
        """Host of the OAuth server, used as the assertion audience."""
        if "://" in self.auth_base_url:
            return urlsplit(self.auth_base_url).netloc
        return self.auth_base_url.split("/", 1)[0]

    @property
    def token_url(self) -> str:
        base = self.auth_base_url.rstrip("/")
        if "://" not in base:
            base = f"https://{base}"
        return f"{base}/oauth/token"

    @property
    def rest_base(self) -> str:
        """Ensure we have exactly one '/restapi' in the base path."""
        base = self.base_path.rstrip("/")
        if not base.endswith("/restapi"):
            base = f"{base}/restapi"
        return base

    @property
    def envelopes_url(self) -> str:
        return f"{self.rest_base}/v2.1/accounts/{self.account_id}/envelopes"


def _read_required(settings: Settings, attribute: str) -> str:
    value: Optional[str] = getattr(settings, attribute, None)
    if value is None or not str(value).strip():
        raise ConfigurationError(REQUIRED_SETTINGS[attribute])
    return str(value).strip()


def decode_private_key(private_key_base64: str) -> RSAPrivateKey:
    """
    Decode a base64 encoded PEM blob into an RSA private key.

    Raises:
        ConfigurationError: when the blob is not base64, not PEM, or not an
            RSA private key.
    """
    key_name = REQUIRED_SETTINGS["ds_private_key_base64"]
    try:
        pem = base64.b64decode("".join(private_key_base64.split()), validate=True).decode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise ConfigurationError(key_name, "is not valid base64 encoded PEM") from e

    try:
        key = _rs256.prepare_key(pem)
    except (InvalidKeyError, ValueError) as e:
        raise ConfigurationError(key_name, "does not contain a usable RSA private key") from e

    if not isinstance(key, RSAPrivateKey):
        raise ConfigurationError(key_name, "does not contain a usable RSA private key")
    return key


def load_provider_credentials(settings: Settings) -> ProviderCredentials:
    """
    Read and validate the DocuSign credentials from the application settings.

    Raises:
        ConfigurationError: naming the first missing or invalid setting.
    """
    values = {attribute: _read_required(settings, attribute) for attribute in REQUIRED_SETTINGS}
    private_key = decode_private_key(values["ds_private_key_base64"])

    credentials = ProviderCredentials(
        integration_key=values["ds_integration_key"],
        user_id=values["ds_user_id"],
        account_id=values["ds_account_id"],
        auth_base_url=values["ds_auth_base_url"],
        base_path=values["ds_base_path"],
        template_id=values["ds_template_id"],
        private_key=private_key,
        timeout_seconds=settings.ds_http_timeout_seconds,
    )
    logger.info(
        "docusign_credentials_loaded",
        account_id=credentials.account_id,
        auth_host=credentials.auth_host,
        template_id=credentials.template_id,
    )
    return credentials
