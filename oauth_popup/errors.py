"""User-facing failures of the popup login flow. str(error) is what the login UI shows."""


class OAuthFlowError(Exception):
    """Base class; also used for a missing token and an unconfigured authorize URL."""


class PopupBlockedError(OAuthFlowError):
    pass


class PopupClosedError(OAuthFlowError):
    pass


class OAuthTimeoutError(OAuthFlowError):
    pass


class OAuthProviderError(OAuthFlowError):
    """The relay or provider reported an error (e.g. access_denied, invalid_grant)."""


class FlowInProgressError(OAuthFlowError):
    """start() called while another attempt on the same controller is still outstanding."""
