"""
Request signing.

Authenticated calls carry their parameters in the query string and an
``apisign`` header holding HMAC-SHA512 of the full URI, keyed with the API
secret. The signature has to cover the exact URI that goes on the wire, so
parameters are folded into the URI first and the result is signed last.
"""
import hashlib
import hmac
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

SIGNATURE_HEADER = "apisign"


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def update_query_string_parameter(uri: str, key: str, value: Any) -> str:
    """
    Set ``key=value`` in the query string of ``uri``.

    An existing ``key=...`` pair (matched case-insensitively) has its value
    replaced in place; otherwise the pair is appended with ``?`` or ``&``.
    """
    value = _format_value(value)
    pattern = re.compile(rf"([?&]){re.escape(key)}=.*?(&|$)", re.IGNORECASE)
    if pattern.search(uri):
        return pattern.sub(
            lambda m: f"{m.group(1)}{key}={value}{m.group(2)}",
            uri,
            count=1,
        )
    separator = "&" if "?" in uri else "?"
    return f"{uri}{separator}{key}={value}"


def apply_parameters(uri: str, params: Optional[Mapping[str, Any]]) -> str:
    """Fold ``params`` into ``uri`` in the mapping's own iteration order."""
    for key, value in (params or {}).items():
        uri = update_query_string_parameter(uri, key, value)
    return uri


def compute_signature(uri: str, secret: str) -> str:
    """HMAC-SHA512 hex digest of ``uri``."""
    return hmac.new(
        secret.encode("utf-8"),
        uri.encode("utf-8"),
        hashlib.sha512,
    ).hexdigest()


@dataclass(frozen=True)
class SignedRequest:
    """A fully prepared GET request, ready for the dispatcher."""

    uri: str
    params: dict[str, Any] = field(default_factory=dict)
    signature: Optional[str] = None
    timeout: float = 15.0

    @property
    def headers(self) -> dict[str, str]:
        if self.signature is None:
            return {}
        return {SIGNATURE_HEADER: self.signature}


class RequestSigner:
    """Canonicalizes a request URI with its parameters and signs it."""

    def __init__(self, secret: str, timeout: float = 15.0):
        self.secret = secret
        self.timeout = timeout

    def sign(
        self,
        base_uri: str,
        params: Optional[Mapping[str, Any]] = None,
        secret: Optional[str] = None,
    ) -> tuple[str, str]:
        """
        Build the final URI and its signature.

        Args:
            base_uri: Endpoint URI, possibly already carrying a query string
            params: Parameters to upsert, applied in insertion order
            secret: Override for the configured secret

        Returns:
            (final_uri, signature)
        """
        final_uri = apply_parameters(base_uri, params)
        return final_uri, compute_signature(final_uri, secret if secret is not None else self.secret)

    def build(
        self,
        base_uri: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> SignedRequest:
        """Sign and wrap into a SignedRequest."""
        final_uri, signature = self.sign(base_uri, params)
        return SignedRequest(
            uri=final_uri,
            params=dict(params or {}),
            signature=signature,
            timeout=self.timeout,
        )


def unsigned_request(
    base_uri: str,
    params: Optional[Mapping[str, Any]] = None,
    timeout: float = 15.0,
) -> SignedRequest:
    """Prepare a public request: parameters folded in, no signature."""
    return SignedRequest(
        uri=apply_parameters(base_uri, params),
        params=dict(params or {}),
        timeout=timeout,
    )
