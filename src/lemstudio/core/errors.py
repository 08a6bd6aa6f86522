"""Exception taxonomy for Lem Studio.

Every error the render pipeline reports derives from :class:`LemStudioError`.
Each class carries a ``user_message``: the single, actionable sentence shown
to the user when a run halts.  ``str(exc)`` keeps the technical detail for
logs.

==========================  ==================================================
Exception                   Raised when
==========================  ==================================================
MissingCredentialError      No API key is available; nothing is sent
InvalidCredentialError      The remote service rejected the API key
QuotaExceededError          Rate limiting persisted past the retry budget
EntityNotFoundError         Key/project mismatch; the key must be re-selected
RemoteGenerationError       Any other remote failure
EmptyResponseError          The call succeeded but returned no image
ImageAcquisitionError       A reference image could not be loaded
NothingSelectedError        Staging started without a selected product
InputsNotConfirmedError     Rendering started before inputs were confirmed
InvalidTransitionError      A render status change broke the lifecycle
==========================  ==================================================
"""


class LemStudioError(Exception):
    """Base class for all Lem Studio errors."""

    user_message: str = "Something went wrong, please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class MissingCredentialError(LemStudioError):
    user_message = (
        "No API key is configured. Set LEMSTUDIO_API_KEY (or GEMINI_API_KEY) "
        "or connect a paid API key before rendering."
    )


class InvalidCredentialError(LemStudioError):
    user_message = "The API key is invalid or has expired. Please provide a valid key."


class QuotaExceededError(LemStudioError):
    user_message = (
        "Quota limit reached. Image generation needs an API key from a Google Cloud "
        "project with billing enabled; connect a paid key or try again later."
    )


class EntityNotFoundError(LemStudioError):
    user_message = (
        "The selected API key does not match an accessible project. "
        "Please select your API key again."
    )


class RemoteGenerationError(LemStudioError):
    """Remote failure outside the other categories.

    The user message includes the underlying remote message.
    """

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message)
        detail = message or "An unexpected error occurred, please try again."
        self.user_message = f"System error: {detail}"


class EmptyResponseError(LemStudioError):
    user_message = (
        "The model finished without returning an image. "
        "Try again or adjust the parameters."
    )


class ImageAcquisitionError(LemStudioError):
    user_message = "Could not load an image for processing. Please check the file format."


class NothingSelectedError(LemStudioError):
    user_message = "Please select at least one product to start Room Staging."


class InputsNotConfirmedError(LemStudioError):
    user_message = "Confirm the imported products before rendering."


class InvalidTransitionError(LemStudioError, ValueError):
    user_message = "The item cannot change to the requested render status."
