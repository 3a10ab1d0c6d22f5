"""
Service assembly.

Turns settings into a ready-to-serve ``ScepService``: resolves secrets, opens
the depot, loads the CA and builds the signer pipeline. Every error raised
here is a startup error and is fatal to the process.
"""

from scepserver.config import Settings
from scepserver.core.logging import logger
from scepserver.domain.errors import CAUnavailable
from scepserver.domain.signer import CSRVerifier
from scepserver.infrastructure import InfrastructureFactory
from scepserver.infrastructure.repositories import Depot
from scepserver.services.csr_verifier import ExecutableCSRVerifier
from scepserver.services.pipeline import build_signer
from scepserver.services.scep_service import ScepService
from scepserver.utils.secret_resolver import resolve_secret


async def create_service(settings: Settings, depot: Depot | None = None) -> ScepService:
    """
    Assemble the SCEP service from settings.

    Args:
        settings: Server settings
        depot: Depot to use instead of the configured one

    Returns:
        The SCEP service

    Raises:
        ConfigurationError: If options conflict or the verifier is unusable
        SecretUnavailable: If a secret file can not be read
        CAUnavailable: If the depot holds no usable CA
    """
    ca_pass = resolve_secret(settings.ca_pass, settings.ca_pass_file, name="capass")
    challenge_password = resolve_secret(
        settings.challenge_password,
        settings.challenge_password_file,
        name="challenge",
    )

    if depot is None:
        depot = InfrastructureFactory.from_settings(settings).get_depot()

    csr_verifier: CSRVerifier | None = None
    if settings.csr_verifier_exec:
        csr_verifier = ExecutableCSRVerifier(
            settings.csr_verifier_exec, timeout=settings.csr_verifier_timeout
        )

    ca_certs, ca_key = await depot.ca(ca_pass.encode())
    if not ca_certs:
        raise CAUnavailable("missing CA certificate")

    signer = build_signer(
        depot,
        allow_renewal_days=settings.cert_renew,
        validity_days=settings.cert_valid,
        ca_passphrase=ca_pass.encode(),
        challenge_password=challenge_password,
        csr_verifier=csr_verifier,
    )

    logger.info(
        f"SCEP service ready: ca={ca_certs[0].subject.rfc4514_string()}, "
        f"challenge={'on' if challenge_password else 'off'}, "
        f"csr_verifier={'on' if csr_verifier else 'off'}"
    )
    return ScepService(ca_certs, ca_key, signer)
