"""
SCEP operation endpoints.

A single path serves every operation, selected by the ``operation`` query
parameter:
- GET  ?operation=GetCACert
- GET  ?operation=GetCACaps
- GET  ?operation=PKIOperation&message=<base64 CSR>
- POST ?operation=PKIOperation (CSR as request body)
"""

import base64
import binascii

from fastapi import APIRouter, HTTPException, Request, Response, status

from scepserver.api.v1 import SCEP_PATH
from scepserver.di import ScepServiceDep
from scepserver.domain.errors import InvalidRequest

router = APIRouter()

GET_CA_CERT = "GetCACert"
GET_CA_CAPS = "GetCACaps"
PKI_OPERATION = "PKIOperation"

CA_CERT_MEDIA_TYPE = "application/x-x509-ca-cert"
CA_RA_CERT_MEDIA_TYPE = "application/x-x509-ca-ra-cert"
CERT_MEDIA_TYPE = "application/pkix-cert"


def _unknown_operation(operation: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"unknown SCEP operation: {operation}",
    )


@router.get(SCEP_PATH, summary="SCEP GET operations")
async def scep_get(
    operation: str,
    service: ScepServiceDep,
    message: str | None = None,
) -> Response:
    """
    Serve GetCACert, GetCACaps and GET-style PKIOperation.

    Args:
        operation: SCEP operation name
        service: SCEP service (injected)
        message: Base64 CSR for PKIOperation

    Returns:
        Raw operation response
    """
    if operation == GET_CA_CERT:
        body, count = service.get_ca_cert()
        media_type = CA_CERT_MEDIA_TYPE if count == 1 else CA_RA_CERT_MEDIA_TYPE
        return Response(content=body, media_type=media_type)

    if operation == GET_CA_CAPS:
        return Response(content=service.get_ca_caps(), media_type="text/plain")

    if operation == PKI_OPERATION:
        if not message:
            raise InvalidRequest("missing message parameter")
        try:
            csr = base64.b64decode(message, validate=True)
        except binascii.Error as e:
            raise InvalidRequest(f"message is not valid base64: {e}") from e
        certificate = await service.pki_operation(csr)
        return Response(content=certificate, media_type=CERT_MEDIA_TYPE)

    raise _unknown_operation(operation)


@router.post(SCEP_PATH, summary="SCEP POST PKIOperation")
async def scep_post(
    operation: str,
    request: Request,
    service: ScepServiceDep,
) -> Response:
    """
    Sign the CSR sent as request body.

    Args:
        operation: SCEP operation name (must be PKIOperation)
        request: Incoming request carrying the CSR
        service: SCEP service (injected)

    Returns:
        DER encoded certificate
    """
    if operation != PKI_OPERATION:
        raise _unknown_operation(operation)

    certificate = await service.pki_operation(await request.body())
    return Response(content=certificate, media_type=CERT_MEDIA_TYPE)
