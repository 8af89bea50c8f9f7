"""Error taxonomy for node provisioning."""


class ArmNodeError(Exception):
    """Base class for all armnode failures."""


class ConfigurationError(ArmNodeError, ValueError):
    """Missing or invalid node configuration, detected before any remote call."""

    def __init__(self, message, node_name=None, provider_name=None, field=None):
        super().__init__(message)
        self.node_name = node_name
        self.provider_name = provider_name
        self.field = field


class ResourceNotFoundError(ArmNodeError, LookupError):
    """A referenced provider resource (e.g. an image) does not exist."""

    def __init__(self, message, criteria=None, node_name=None, provider_name=None):
        super().__init__(message)
        self.criteria = dict(criteria or {})
        self.node_name = node_name
        self.provider_name = provider_name


class ProvisioningError(ArmNodeError, RuntimeError):
    """The provisioning backend rejected or failed a request.

    The original exception is chained as ``__cause__``; ``request`` is the
    submitted ProvisioningRequest.
    """

    def __init__(self, message, request=None):
        super().__init__(message)
        self.request = request


class AzureApiError(ArmNodeError):
    """Non-success response from the Azure Resource Manager REST API."""

    def __init__(self, status_code, code="", message="", method="", url=""):
        text = f"Azure API {method} {url} failed with HTTP {status_code}"
        if code:
            text += f" ({code})"
        if message:
            text += f": {message}"
        super().__init__(text)
        self.status_code = status_code
        self.code = code
        self.api_message = message
