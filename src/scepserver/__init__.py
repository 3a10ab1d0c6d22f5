"""
SCEP certificate enrollment server.

Bootstraps a Certificate Authority and serves a policy-wrapped CSR signer
to SCEP clients.
"""

__version__ = "2.1.0"
