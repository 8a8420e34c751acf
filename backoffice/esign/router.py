# backoffice/esign/router.py

import io
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Path, Request, status
from fastapi.responses import StreamingResponse

from backoffice.esign.docusign_client import DocusignClient
from backoffice.esign.exceptions import ESignBaseException, convert_to_http_exception
from backoffice.esign.schemas import (
    ContractEnvelopeRequest,
    EnvelopeStatusResult,
    EnvelopeSummary,
)
from backoffice.utils.logger import get_logger

router = APIRouter(tags=["Esign"], prefix="/esign")
logger = get_logger(__name__)

# DocuSign envelope ids are GUIDs
ENVELOPE_ID_PATTERN = r"^[A-Za-z0-9-]+$"


def attachment_disposition(file_name: str) -> str:
    """
    Content-Disposition for a download. Names that are not plain ASCII get an
    ASCII `filename` fallback plus an RFC 5987 `filename*`.
    """
    encoded = quote(file_name)
    if encoded == file_name:
        return f'attachment; filename="{file_name}"'
    fallback = "".join(
        c for c in file_name if c.isascii() and c.isprintable() and c not in '"\\'
    ).strip()
    return f'attachment; filename="{fallback or "document.pdf"}"; filename*=UTF-8\'\'{encoded}'


def get_docusign_client(request: Request) -> DocusignClient:
    """
    DocuSign client built from the credentials loaded at startup
    """
    client = getattr(request.app.state, "docusign_client", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="DocuSign integration is not configured.",
        )
    return client


@router.post(
    "/contracts",
    response_model=EnvelopeSummary,
    status_code=status.HTTP_202_ACCEPTED,
)
async def send_contract(
    request_data: ContractEnvelopeRequest,
    docusign_client: DocusignClient = Depends(get_docusign_client),
):
    """
    Sends the contract template to the customer for signature.
    """
    try:
        return await docusign_client.send_contract_envelope(
            customer=request_data.customer, fields=request_data.fields
        )
    except ESignBaseException as e:
        raise convert_to_http_exception(e) from e


@router.get("/envelopes/{envelope_id}/status", response_model=EnvelopeStatusResult)
async def get_envelope_status(
    envelope_id: str = Path(pattern=ENVELOPE_ID_PATTERN),
    docusign_client: DocusignClient = Depends(get_docusign_client),
):
    """Fetch the live status of an envelope from DocuSign."""
    try:
        return await docusign_client.get_envelope_status(envelope_id)
    except ESignBaseException as e:
        raise convert_to_http_exception(e) from e


@router.get("/envelopes/{envelope_id}/document")
async def download_signed_document(
    envelope_id: str = Path(pattern=ENVELOPE_ID_PATTERN),
    docusign_client: DocusignClient = Depends(get_docusign_client),
):
    """
    Streams the combined, signed PDF for a COMPLETED envelope.
    """
    try:
        document = await docusign_client.download_signed_document(envelope_id)
    except ESignBaseException as e:
        raise convert_to_http_exception(e) from e

    headers = {"Content-Disposition": attachment_disposition(document.file_name)}
    return StreamingResponse(
        io.BytesIO(document.content), media_type="application/pdf", headers=headers
    )
