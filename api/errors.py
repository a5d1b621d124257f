"""
Error taxonomy for the Livros API.

Per-request errors carry the HTTP status they are reported with; the fatal
startup errors (configuration and initial connection) never reach a handler.
"""

from typing import List, Optional


REQUIRED_FIELDS_MESSAGE = "Campos obrigatórios: titulo, autor, editora, ano, preco"


class BookAPIError(Exception):
    """Base class for all errors raised by the service."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(BookAPIError):
    """Required environment variables are missing or invalid."""


class DatabaseConnectionError(BookAPIError):
    """The persistence store could not be reached at startup."""


class BookValidationError(BookAPIError):
    """Malformed client input."""

    status_code = 400

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = fields or []


class MissingFieldsError(BookValidationError):
    """One or more required book fields are absent, null or empty."""

    def __init__(self, fields: List[str]):
        super().__init__(REQUIRED_FIELDS_MESSAGE, fields)


class InvalidBookIdError(BookValidationError):
    """The identifier is not a structurally valid ObjectId."""

    def __init__(self, book_id: str):
        super().__init__("ID inválido")
        self.book_id = book_id


class EmptyUpdateError(BookValidationError):
    """An update request supplied none of the book fields."""

    def __init__(self):
        super().__init__("Nenhum campo para atualizar")


class BookNotFoundError(BookAPIError):
    """No book matches the identifier."""

    status_code = 404

    def __init__(self, book_id: str):
        super().__init__("Livro não encontrado")
        self.book_id = book_id


class StoreError(BookAPIError):
    """Any other persistence failure."""
