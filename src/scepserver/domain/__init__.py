"""
Domain layer - signing contracts and errors.

This package contains:
- Signer: the CSR signing capability exposed to the protocol layer
- CSRVerifier: the external CSR verification capability
- Errors: domain-specific exceptions
"""
