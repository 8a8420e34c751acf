import base64
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from backoffice.core.config import Settings
from backoffice.esign.credentials import ProviderCredentials, load_provider_credentials

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)

ACCOUNT_ID = "acc-123"
TEMPLATE_ID = "tpl-456"

ResponseSpec = Tuple[int, Union[Dict[str, Any], str, bytes], Dict[str, str]]


def _pem(key: rsa.RSAPrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_base64(rsa_private_key) -> str:
    return base64.b64encode(_pem(rsa_private_key)).decode("ascii")


def make_settings(private_key_base64: str, base_url: str = "https://account-d.docusign.com", **overrides) -> Settings:
    values = {
        "ds_integration_key": "integration-key",
        "ds_user_id": "service-user",
        "ds_account_id": ACCOUNT_ID,
        "ds_auth_base_url": base_url,
        "ds_base_path": base_url,
        "ds_template_id": TEMPLATE_ID,
        "ds_private_key_base64": private_key_base64,
        "ds_http_timeout_seconds": 5,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings_factory(private_key_base64):
    def factory(**overrides) -> Settings:
        return make_settings(private_key_base64, **overrides)
    return factory


@pytest.fixture
def credentials(private_key_base64) -> ProviderCredentials:
    return load_provider_credentials(make_settings(private_key_base64))


class FakeDocusign:
    """
    A local stand-in for the DocuSign OAuth and eSignature endpoints.
    Responses can be replaced per test; every request is recorded.
    """

    def __init__(self):
        self.base_url = ""
        self.requests: List[Dict[str, Any]] = []
        self.token_response: ResponseSpec = (200, {"access_token": "token-1", "token_type": "Bearer"}, {})
        self.envelope_response: ResponseSpec = (201, {"envelopeId": "abc123", "status": "sent"}, {})
        self.status_response: ResponseSpec = (200, {"envelopeId": "abc123", "status": "sent"}, {})
        self.document_response: ResponseSpec = (200, b"%PDF-1.7 signed", {})

    def requests_to(self, path_suffix: str) -> List[Dict[str, Any]]:
        return [r for r in self.requests if r["path"].endswith(path_suffix)]

    @staticmethod
    def _respond(spec: ResponseSpec) -> web.Response:
        status, body, headers = spec
        if isinstance(body, dict):
            return web.json_response(body, status=status, headers=headers)
        if isinstance(body, bytes):
            return web.Response(body=body, status=status, headers=headers)
        return web.Response(text=body, status=status, headers=headers)

    def _record(self, request: web.Request, body: Optional[Any] = None) -> None:
        self.requests.append({
            "method": request.method,
            "path": request.path,
            "query": request.query_string,
            "headers": request.headers.copy(),
            "body": body,
        })

    async def token(self, request: web.Request) -> web.Response:
        form = await request.post()
        self._record(request, dict(form))
        return self._respond(self.token_response)

    async def create_envelope(self, request: web.Request) -> web.Response:
        self._record(request, await request.json())
        return self._respond(self.envelope_response)

    async def envelope_status(self, request: web.Request) -> web.Response:
        self._record(request)
        return self._respond(self.status_response)

    async def combined_document(self, request: web.Request) -> web.Response:
        self._record(request)
        return self._respond(self.document_response)

    def build_app(self) -> web.Application:
        envelopes = "/restapi/v2.1/accounts/{account_id}/envelopes"
        app = web.Application()
        app.router.add_post("/oauth/token", self.token)
        app.router.add_post(envelopes, self.create_envelope)
        app.router.add_get(envelopes + "/{envelope_id}", self.envelope_status)
        app.router.add_get(envelopes + "/{envelope_id}/documents/combined", self.combined_document)
        return app


@pytest_asyncio.fixture
async def fake_docusign():
    fake = FakeDocusign()
    server = TestServer(fake.build_app())
    await server.start_server()
    fake.base_url = str(server.make_url("")).rstrip("/")
    logger.info("Fake DocuSign listening on %s", fake.base_url)
    try:
        yield fake
    finally:
        await server.close()


@pytest.fixture
def provider_credentials(fake_docusign, private_key_base64) -> ProviderCredentials:
    return load_provider_credentials(make_settings(private_key_base64, base_url=fake_docusign.base_url))
