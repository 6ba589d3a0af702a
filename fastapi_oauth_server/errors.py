"""
OAuth2 protocol errors. Each carries an HTTP status (code), a machine-readable name
(RFC 6749 §5.2 error code) and a human-readable message.
Raised by the protocol engine; rendered or forwarded by the adapter.
"""


class OAuthError(Exception):
    """Base class for protocol errors."""

    code = 500
    name = "server_error"

    def __init__(self, message: str | None = None, *, code: int | None = None, inner: Exception | None = None):
        self.message = message or (str(inner) if inner is not None else self.name)
        if code is not None:
            self.code = code
        self.inner = inner
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code}, name={self.name!r}, message={self.message!r})"


class InvalidArgumentError(OAuthError):
    """Bad adapter or engine construction input."""

    code = 500
    name = "invalid_argument"


class InvalidRequestError(OAuthError):
    code = 400
    name = "invalid_request"


class InvalidClientError(OAuthError):
    code = 400
    name = "invalid_client"


class InvalidGrantError(OAuthError):
    code = 400
    name = "invalid_grant"


class InvalidScopeError(OAuthError):
    code = 400
    name = "invalid_scope"


class InvalidTokenError(OAuthError):
    """RFC 6750 §3.1: token expired, revoked, malformed or otherwise invalid."""

    code = 401
    name = "invalid_token"


class InsufficientScopeError(OAuthError):
    code = 403
    name = "insufficient_scope"


class UnauthorizedClientError(OAuthError):
    code = 400
    name = "unauthorized_client"


class UnauthorizedRequestError(OAuthError):
    """
    Request carried no authentication at all. RFC 6750 §3.1: the response
    should not include an error code or other error information.
    """

    code = 401
    name = "unauthorized_request"


class AccessDeniedError(OAuthError):
    code = 400
    name = "access_denied"


class UnsupportedGrantTypeError(OAuthError):
    code = 400
    name = "unsupported_grant_type"


class UnsupportedResponseTypeError(OAuthError):
    code = 400
    name = "unsupported_response_type"


class ServerError(OAuthError):
    code = 503
    name = "server_error"
