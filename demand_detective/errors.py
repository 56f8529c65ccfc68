"""Exception hierarchy for the Detective de Demanda backend."""

from __future__ import annotations

PARSE_FAILURE_MESSAGE = "No se pudo interpretar la respuesta de la IA. Por favor, inténtalo de nuevo."
UNKNOWN_FAILURE_MESSAGE = "Ocurrió un error desconocido."
EMPTY_PROFILE_MESSAGE = "Por favor, introduce tu perfil, CV o una descripción de tus habilidades primero."


class DemandDetectiveError(Exception):
    """Base exception for the wizard."""


class FatalConfigurationError(DemandDetectiveError):
    """Raised at startup when a required credential is missing."""


class InputValidationError(DemandDetectiveError):
    """Raised when the profile text is empty."""

    def __init__(self, message: str = EMPTY_PROFILE_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


class PreconditionNotMet(DemandDetectiveError):
    """A persona-scoped step was requested without its inputs.

    The orchestrator treats this as a silent skip.
    """


class PersonaNotFoundError(DemandDetectiveError):
    """Raised when selecting a persona name that is not in the current set."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Persona '{name}' does not exist in the current session.")
        self.name = name


class GenerationError(DemandDetectiveError):
    """Base class for failures of a single generation call."""

    user_message = PARSE_FAILURE_MESSAGE


class ResponseParseError(GenerationError):
    """The service replied but the payload does not match the expected shape."""


class GenerationServiceError(GenerationError):
    """The generation call itself failed (network, auth, quota)."""
