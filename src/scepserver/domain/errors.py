"""
Domain exceptions.

Startup errors (configuration, secrets, bootstrap, CA loading) are fatal and
terminate the process. Signing errors are raised per request and turned into
problem responses by the HTTP layer.
"""


class ScepError(Exception):
    """Base class for all server errors."""


# ============================================================================
# Startup errors
# ============================================================================


class ConfigurationError(ScepError):
    """Error raised when the server configuration is unusable."""


class ConfigurationConflict(ConfigurationError):
    """
    Error raised when mutually exclusive options are both set.
    """

    def __init__(self, first: str, second: str):
        super().__init__(f"can not use {first} and {second} at the same time")
        self.first = first
        self.second = second


class VerifierUnavailable(ConfigurationError):
    """Error raised when the CSR verifier executable can not be used."""


class SecretUnavailable(ScepError):
    """
    Error raised when a secret file was requested but could not be read.
    """

    def __init__(self, path: str, reason: str):
        super().__init__(f"could not read secret file {path}: {reason}")
        self.path = path
        self.reason = reason


class BootstrapCollision(ScepError):
    """
    Error raised when CA material already exists at the target path.
    """

    def __init__(self, path: str):
        super().__init__(f"{path} already exists, refusing to overwrite")
        self.path = path


class KeyAlreadyExists(BootstrapCollision):
    """Error raised when the CA key file already exists."""


class CertAlreadyExists(BootstrapCollision):
    """Error raised when the CA certificate file already exists."""


class CAUnavailable(ScepError):
    """Error raised when the depot holds no usable CA."""


class IncorrectPassphrase(ScepError):
    """Error raised when an encrypted PEM block can not be decrypted."""


# ============================================================================
# Per-request signing errors
# ============================================================================


class SigningError(ScepError):
    """Base class for errors that refuse a single signing request."""


class InvalidRequest(SigningError):
    """Error raised when the request does not carry a usable CSR."""


class ChallengeMismatch(SigningError):
    """Error raised when the presented challenge password is wrong."""

    def __init__(self) -> None:
        super().__init__("invalid challenge password")


class CSRRejected(SigningError):
    """Error raised when the CSR verifier rejects a request."""

    def __init__(self) -> None:
        super().__init__("CSR verify failed")


class VerifierExecutionFailed(SigningError):
    """Error raised when the CSR verifier could not produce a verdict."""


class RenewalNotAllowed(SigningError):
    """
    Error raised when a certificate for the same subject is still too far
    from its expiry to be renewed.
    """

    def __init__(self, common_name: str, allow_renewal_days: int):
        super().__init__(
            f"certificate for {common_name!r} exists and is not within "
            f"{allow_renewal_days} days of expiry"
        )
        self.common_name = common_name
        self.allow_renewal_days = allow_renewal_days
