# backoffice/esign/docusign_client.py

import asyncio
import json
import re
import uuid
from typing import Any, Dict, Optional
from urllib.parse import quote, unquote

import aiohttp

from backoffice.esign.assertion import build_assertion
from backoffice.esign.credentials import ProviderCredentials
from backoffice.esign.exceptions import (
    AuthenticationError,
    DocumentRetrievalError,
    EnvelopeStatusError,
    EnvelopeSubmissionError,
)
from backoffice.esign.schemas import (
    ContractFields,
    Customer,
    EnvelopeStatusResult,
    EnvelopeSummary,
    SignedDocument,
)
from backoffice.esign.tabs import build_template_tabs
from backoffice.utils.logger import get_logger

logger = get_logger(__name__)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
IDEMPOTENCY_HEADER = "X-DocuSign-Idempotency-Key"
CUSTOMER_ROLE_NAME = "Customer"
BODY_EXCERPT_LIMIT = 500

_FILENAME_STAR_RE = re.compile(r"filename\*\s*=\s*([^;]+)", re.IGNORECASE)
_FILENAME_RE = re.compile(r"filename\s*=\s*(\"[^\"]*\"|[^;]+)", re.IGNORECASE)
# quotes and control characters never survive into a file name
_UNSAFE_FILENAME_CHARS_RE = re.compile(r'["\x00-\x1f\x7f]')


def _is_success(status: int) -> bool:
    return 200 <= status < 300


def _parse_json(body: str) -> Optional[Dict[str, Any]]:
    """Parse a JSON object body; None for anything else."""
    try:
        data = json.loads(body)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _string_or_none(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return value if isinstance(value, str) and value else None


def file_name_from_disposition(content_disposition: Optional[str], envelope_id: str) -> str:
    """
    File name from a Content-Disposition header, without quotes or any path
    prefix. Falls back to `envelope-<id>.pdf`.
    """
    name = ""
    if content_disposition:
        match = _FILENAME_STAR_RE.search(content_disposition)
        if match:
            value = match.group(1).strip().strip('"')
            # RFC 5987: charset'language'percent-encoded
            if value.count("'") >= 2:
                value = value.split("'", 2)[2]
            name = unquote(value)
        else:
            match = _FILENAME_RE.search(content_disposition)
            if match:
                name = match.group(1).strip().strip('"').strip("'")
        name = _UNSAFE_FILENAME_CHARS_RE.sub("", name)
        name = re.split(r"[\\/]", name)[-1].strip()
    return name or f"envelope-{envelope_id}.pdf"


class DocusignClient:
    """
    DocuSign eSignature client for the contract template.

    Every public call authenticates first, then makes its API call. No token,
    session or connection outlives a call.
    """

    def __init__(self, credentials: ProviderCredentials):
        self.credentials = credentials

    def _timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.credentials.timeout_seconds)

    def _envelope_url(self, envelope_id: str) -> str:
        """URL of one envelope; the id is always a single escaped path segment."""
        segment = quote(envelope_id, safe="")
        if segment in ("", ".", ".."):
            raise ValueError(f"Invalid envelope id: {envelope_id!r}")
        return f"{self.credentials.envelopes_url}/{segment}"

    def _auth_headers(self, access_token: str, accept: str = "application/json") -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": accept,
        }

    async def request_access_token(self) -> str:
        """
        Exchanges a freshly signed JWT assertion for an access token.
        """
        payload = {
            "grant_type": JWT_BEARER_GRANT,
            "assertion": build_assertion(self.credentials),
        }
        try:
            async with aiohttp.ClientSession(timeout=self._timeout()) as session:
                async with session.post(self.credentials.token_url, data=payload) as response:
                    status = response.status
                    body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("docusign_token_transport_error", error=str(e))
            raise AuthenticationError("DocuSign authentication failed") from e

        data = _parse_json(body) or {}
        access_token = _string_or_none(data, "access_token")
        if _is_success(status) and access_token:
            return access_token

        message = (
            _string_or_none(data, "error_description")
            or _string_or_none(data, "error")
            or "DocuSign authentication failed"
        )
        logger.error("docusign_token_error", status=status, error=data.get("error"))
        raise AuthenticationError(message, status_code=status, error_code=_string_or_none(data, "error"))

    async def send_contract_envelope(self, customer: Customer, fields: ContractFields) -> EnvelopeSummary:
        """
        Sends the contract template to the customer with the mapped fields.
        The envelope is created directly in the 'sent' state.
        """
        template_role: Dict[str, Any] = {
            "roleName": CUSTOMER_ROLE_NAME,
            "name": customer.name,
            "email": str(customer.email),
        }
        tabs = build_template_tabs(fields)
        if tabs:
            template_role["tabs"] = tabs

        envelope_definition = {
            "templateId": self.credentials.template_id,
            "status": "sent",
            "templateRoles": [template_role],
        }

        access_token = await self.request_access_token()
        headers = {
            **self._auth_headers(access_token),
            "Content-Type": "application/json",
            IDEMPOTENCY_HEADER: str(uuid.uuid4()),
        }

        try:
            async with aiohttp.ClientSession(timeout=self._timeout()) as session:
                async with session.post(
                    self.credentials.envelopes_url, headers=headers, json=envelope_definition
                ) as response:
                    status = response.status
                    body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("docusign_envelope_transport_error", error=str(e))
            raise EnvelopeSubmissionError(f"Failed to send DocuSign envelope: {e}") from e

        data = _parse_json(body)
        if not _is_success(status):
            data = data or {}
            message = (
                _string_or_none(data, "message")
                or _string_or_none(data, "errorCode")
                or "Failed to send DocuSign envelope"
            )
            logger.error("docusign_envelope_creation_failed", status=status, error_code=data.get("errorCode"))
            raise EnvelopeSubmissionError(
                message, status_code=status, error_code=_string_or_none(data, "errorCode")
            )

        envelope_id = _string_or_none(data or {}, "envelopeId")
        if not envelope_id:
            logger.error("docusign_envelope_unexpected_response", status=status)
            raise EnvelopeSubmissionError(
                "DocuSign returned an unexpected envelope response", status_code=status
            )

        summary = EnvelopeSummary(envelope_id=envelope_id, status=_string_or_none(data, "status") or "")
        logger.info("docusign_envelope_sent", envelope_id=summary.envelope_id, status=summary.status)
        return summary

    async def get_envelope_status(self, envelope_id: str) -> EnvelopeStatusResult:
        """Reads the current status and lifecycle timestamps of an envelope."""
        url = self._envelope_url(envelope_id)
        access_token = await self.request_access_token()

        try:
            async with aiohttp.ClientSession(timeout=self._timeout()) as session:
                async with session.get(url, headers=self._auth_headers(access_token)) as response:
                    status = response.status
                    body = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("docusign_status_transport_error", envelope_id=envelope_id, error=str(e))
            raise EnvelopeStatusError(f"Failed to fetch envelope status: {e}") from e

        data = _parse_json(body)
        if not _is_success(status):
            data = data or {}
            message = (
                _string_or_none(data, "message")
                or _string_or_none(data, "errorCode")
                or "Failed to fetch envelope status"
            )
            logger.error("docusign_status_failed", envelope_id=envelope_id, status=status)
            raise EnvelopeStatusError(message, status_code=status, error_code=_string_or_none(data, "errorCode"))

        if data is None or not _string_or_none(data, "status"):
            raise EnvelopeStatusError("DocuSign returned an unexpected status response", status_code=status)

        result = EnvelopeStatusResult(
            envelope_id=_string_or_none(data, "envelopeId") or envelope_id,
            status=data["status"],
            status_datetime=_string_or_none(data, "statusDateTime"),
            status_changed_datetime=_string_or_none(data, "statusChangedDateTime"),
            sent_datetime=_string_or_none(data, "sentDateTime"),
            completed_datetime=_string_or_none(data, "completedDateTime"),
        )
        logger.info(
            "docusign_status_fetched",
            envelope_id=result.envelope_id,
            status=result.status,
            is_final=result.is_final,
        )
        return result

    async def download_signed_document(self, envelope_id: str) -> SignedDocument:
        """Downloads the final, signed PDF from a completed envelope."""
        url = f"{self._envelope_url(envelope_id)}/documents/combined"
        access_token = await self.request_access_token()

        try:
            async with aiohttp.ClientSession(timeout=self._timeout()) as session:
                async with session.get(
                    url, headers=self._auth_headers(access_token, accept="application/pdf")
                ) as response:
                    status = response.status
                    content = await response.read()
                    content_disposition = response.headers.get("Content-Disposition")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("docusign_document_transport_error", envelope_id=envelope_id, error=str(e))
            raise DocumentRetrievalError(f"Failed to download signed document: {e}") from e

        if not _is_success(status):
            excerpt = content.decode("utf-8", errors="replace")[:BODY_EXCERPT_LIMIT]
            logger.error("docusign_document_download_failed", envelope_id=envelope_id, status=status)
            raise DocumentRetrievalError(
                f"Failed to download signed document (HTTP {status})",
                status_code=status,
                body_excerpt=excerpt,
            )

        document = SignedDocument(
            content=content,
            file_name=file_name_from_disposition(content_disposition, envelope_id),
        )
        logger.info("docusign_document_downloaded", envelope_id=envelope_id, size=len(content))
        return document
