"""
Signer pipeline builder.

Builds the signer handed to the SCEP service, inside-out:

    LoggingSigner -> CSRVerifierSigner? -> ChallengeSigner? -> DepotSigner

Optional layers are only present when configured. A CSR is verified before the
challenge is checked, and the challenge is checked before the CA key is
touched.
"""

from typing import Any

from scepserver.domain.signer import CSRVerifier, Signer
from scepserver.infrastructure.repositories import Depot
from scepserver.services.depot_signer import (
    DEFAULT_ALLOW_RENEWAL_DAYS,
    DEFAULT_VALIDITY_DAYS,
    DepotSigner,
)
from scepserver.services.signer_middleware import (
    ChallengeSigner,
    CSRVerifierSigner,
    LoggingSigner,
)


def build_signer(
    depot: Depot,
    *,
    allow_renewal_days: int = DEFAULT_ALLOW_RENEWAL_DAYS,
    validity_days: int = DEFAULT_VALIDITY_DAYS,
    ca_passphrase: bytes = b"",
    challenge_password: str = "",
    csr_verifier: CSRVerifier | None = None,
    logger: Any = None,
) -> Signer:
    """
    Compose the signing pipeline.

    Args:
        depot: Depot backing the base signer
        allow_renewal_days: Renewal window in days (0: always allow)
        validity_days: Validity of issued certificates in days
        ca_passphrase: Password of the CA key
        challenge_password: Required challenge ("" disables the check)
        csr_verifier: External CSR verifier (None disables verification)
        logger: Logger for the logging layer (defaults to the loguru logger)

    Returns:
        The outermost signer
    """
    signer: Signer = DepotSigner(
        depot,
        allow_renewal_days=allow_renewal_days,
        validity_days=validity_days,
        ca_passphrase=ca_passphrase,
    )
    if challenge_password:
        signer = ChallengeSigner(challenge_password, signer)
    if csr_verifier is not None:
        signer = CSRVerifierSigner(csr_verifier, signer)
    return LoggingSigner(signer, logger=logger)
