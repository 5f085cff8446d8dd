"""Custom exceptions for the application"""

class DocumentIntelligenceException(Exception):
    """Base exception for all custom exceptions"""
    pass

class DocumentProcessingError(DocumentIntelligenceException):
    """Raised when text extraction from an uploaded file fails"""
    pass

class DocumentNotFoundError(DocumentIntelligenceException):
    """Raised when a document (or its structure) does not exist for the requesting user"""

    def __init__(self, message: str = "Document not found", details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(DocumentIntelligenceException):
    """Raised when a request is well-formed but semantically invalid"""
    pass

class AuthenticationError(DocumentIntelligenceException):
    """Raised when authentication fails"""
    pass

class StorageError(DocumentIntelligenceException):
    """Raised when the persistence backend cannot complete an operation"""
    pass
