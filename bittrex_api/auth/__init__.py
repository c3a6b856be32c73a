"""
Request authentication: nonces and HMAC signing.
"""

from bittrex_api.auth.nonce import NONCE_WINDOW, NonceGenerator
from bittrex_api.auth.signer import (
    SIGNATURE_HEADER,
    RequestSigner,
    SignedRequest,
    apply_parameters,
    compute_signature,
    unsigned_request,
    update_query_string_parameter,
)

__all__ = [
    "NONCE_WINDOW",
    "NonceGenerator",
    "SIGNATURE_HEADER",
    "RequestSigner",
    "SignedRequest",
    "apply_parameters",
    "compute_signature",
    "unsigned_request",
    "update_query_string_parameter",
]
