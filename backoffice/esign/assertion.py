# backoffice/esign/assertion.py

"""
JWT-bearer assertion for the DocuSign service-account grant.

The assertion is assembled by hand from a URL-safe encoder and an RS256
signature so that each piece can be tested on its own.
"""

import base64
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from jwt.algorithms import RSAAlgorithm

from backoffice.esign.credentials import ProviderCredentials

ASSERTION_TTL_SECONDS = 300
ASSERTION_SCOPE = "signature impersonation"
ASSERTION_HEADER = {"alg": "RS256", "typ": "JWT"}

_rs256 = RSAAlgorithm(RSAAlgorithm.SHA256)


def base64url_encode(value: Union[bytes, str]) -> str:
    """Base64url without '=' padding."""
    if isinstance(value, str):
        value = value.encode("utf-8")
    return base64.urlsafe_b64encode(value).rstrip(b"=").decode("ascii")


def compute_signature(signing_input: Union[bytes, str], private_key: RSAPrivateKey) -> bytes:
    """RSASSA-PKCS1-v1_5 / SHA-256 signature over the signing input."""
    if isinstance(signing_input, str):
        signing_input = signing_input.encode("ascii")
    return _rs256.sign(signing_input, private_key)


def _encode_segment(data: Dict[str, Any]) -> str:
    return base64url_encode(json.dumps(data, separators=(",", ":")))


def build_assertion_payload(credentials: ProviderCredentials, issued_at: int) -> Dict[str, Any]:
    return {
        "iss": credentials.integration_key,
        "sub": credentials.user_id,
        "aud": credentials.auth_host,
        "scope": ASSERTION_SCOPE,
        "iat": issued_at,
        "exp": issued_at + ASSERTION_TTL_SECONDS,
    }


def build_assertion(credentials: ProviderCredentials, issued_at: Optional[int] = None) -> str:
    """
    Build a signed `header.payload.signature` assertion.

    Args:
        credentials: The loaded provider credentials.
        issued_at: Unix seconds; defaults to now. Expiry is issued_at + 300.
    """
    if issued_at is None:
        issued_at = int(datetime.now(timezone.utc).timestamp())

    signing_input = ".".join([
        _encode_segment(ASSERTION_HEADER),
        _encode_segment(build_assertion_payload(credentials, issued_at)),
    ])
    signature = compute_signature(signing_input, credentials.private_key)
    return f"{signing_input}.{base64url_encode(signature)}"
