"""
Signer middlewares.

Each middleware wraps another signer and either refuses a request or passes
it on unchanged:
- ChallengeSigner: requires the configured challenge password
- CSRVerifierSigner: requires approval from an external CSR verifier
- LoggingSigner: records the outcome of every attempt
"""

import hmac
import time
from typing import Any

from cryptography import x509
from loguru import logger as default_logger

from scepserver.domain.errors import ChallengeMismatch, CSRRejected
from scepserver.domain.signer import CSRRequest, CSRVerifier, Signer, SignerMiddleware
from scepserver.services.depot_signer import csr_common_name


class ChallengeSigner(SignerMiddleware):
    """Refuses requests that do not present the challenge password."""

    def __init__(self, challenge_password: str, next_signer: Signer):
        if not challenge_password:
            raise ValueError("challenge password must not be empty")
        super().__init__(next_signer)
        self._challenge = challenge_password.encode()

    async def sign(self, request: CSRRequest) -> x509.Certificate:
        presented = request.challenge_password.encode()
        if not hmac.compare_digest(presented, self._challenge):
            raise ChallengeMismatch()
        return await self.next.sign(request)


class CSRVerifierSigner(SignerMiddleware):
    """Refuses requests whose raw CSR the verifier does not approve."""

    def __init__(self, verifier: CSRVerifier, next_signer: Signer):
        super().__init__(next_signer)
        self.verifier = verifier

    async def sign(self, request: CSRRequest) -> x509.Certificate:
        if not await self.verifier.verify(request.raw):
            raise CSRRejected()
        return await self.next.sign(request)


class LoggingSigner(SignerMiddleware):
    """Logs each signing attempt; results and errors pass through untouched."""

    def __init__(self, next_signer: Signer, logger: Any = None):
        super().__init__(next_signer)
        self.logger = (logger or default_logger).bind(component="scep_signer")

    async def sign(self, request: CSRRequest) -> x509.Certificate:
        common_name = csr_common_name(request.csr)
        started = time.perf_counter()
        try:
            certificate = await self.next.sign(request)
        except Exception as e:
            self.logger.info(
                f"method=SignCSR cn={common_name!r} err={e!r} "
                f"took={time.perf_counter() - started:.3f}s"
            )
            raise
        self.logger.info(
            f"method=SignCSR cn={common_name!r} serial={certificate.serial_number:X} "
            f"took={time.perf_counter() - started:.3f}s"
        )
        return certificate
