"""Error taxonomy for the prompt and generation pipeline.

Every error carries a ``code`` naming its place in the taxonomy.  The string
form of an error is ``"<code>: <message>"`` so that failed generation results,
which only carry a message string, still tell callers which kind of failure
occurred.
"""


class HuibenError(Exception):
    """Base class for all pipeline errors.

    The message is intended to be displayed directly to the user.
    """

    code = "HuibenError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        if self.message:
            return f"{self.code}: {self.message}"
        return self.code


class EmptyInputError(HuibenError):
    """Raised by the prompt compiler for an empty prompt."""

    code = "EmptyInput"


class ConfigMissingError(HuibenError):
    """No stored configuration exists yet."""

    code = "ConfigMissing"


class MissingCredentialError(HuibenError):
    """The selected provider has a blank API key."""

    code = "MissingCredential"


class UnsupportedProviderError(HuibenError):
    """The requested provider name is not one of the supported providers."""

    code = "UnsupportedProvider"


class RequestFailedError(HuibenError):
    """Transport failure or non-2xx response from a provider."""

    code = "RequestFailed"

    def __init__(self, message: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResponseParseFailedError(HuibenError):
    """A provider response body was not valid JSON."""

    code = "ResponseParseFailed"


class NoImagesGeneratedError(HuibenError):
    """A provider answered successfully but returned no images."""

    code = "NoImagesGenerated"


class DecryptFailedError(HuibenError):
    """Ciphertext failed authentication."""

    code = "DecryptFailed"


class MalformedCiphertextError(HuibenError):
    """Ciphertext is too short to contain a nonce."""

    code = "MalformedCiphertext"


class TaskNotFoundError(HuibenError):
    """The task id is unknown or the task already finished."""

    code = "TaskNotFound"


class BindingError(HuibenError):
    """Invalid input to a binding operation (empty name, missing file, bad upload)."""

    code = "BindingError"
