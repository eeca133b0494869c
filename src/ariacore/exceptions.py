# src/ariacore/exceptions.py
"""
Custom exceptions for the ariacore library.

This module defines a hierarchy of custom exception classes so that
applications embedding the agent can tell configuration mistakes apart
from collaborator failures. Most runtime failures inside the learning
loop never surface as exceptions (see the agent module); these classes
mark the places where failing loudly is the intended behavior.
"""

class AriaCoreError(Exception):
    """Base class for all ariacore specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in ariacore."):
        super().__init__(message)

class ConfigError(AriaCoreError):
    """Raised for errors related to configuration loading, validation, or missing collaborators."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)

class ToolNotFoundError(AriaCoreError):
    """
    Raised when a tool name is not present in the tool registry.
    This indicates a setup bug rather than a transient failure.
    """
    def __init__(self, tool_name: str, message: str = "Tool not found."):
        self.tool_name = tool_name
        super().__init__(f"{message} Tool: '{tool_name}'")

class ProviderError(AriaCoreError):
    """Raised for errors originating from the language-model provider (API errors, connection issues)."""
    def __init__(self, provider_name: str = "Unknown", message: str = "Provider error."):
        self.provider_name = provider_name
        super().__init__(f"Error with provider '{provider_name}': {message}")

class AuthenticationError(ProviderError):
    """Raised for authentication or permission failures with a provider. Never retried."""
    def __init__(self, provider_name: str = "Unknown", message: str = "Authentication failed."):
        super().__init__(provider_name, message)

class LedgerError(AriaCoreError):
    """Raised when a milestone could not be recorded on the ledger."""
    def __init__(self, milestone_id: str = "Unknown", message: str = "Ledger recording failed."):
        self.milestone_id = milestone_id
        super().__init__(f"{message} Milestone ID: '{milestone_id}'")

class PersistenceError(AriaCoreError):
    """Raised when an agent state snapshot cannot be written or read."""
    def __init__(self, message: str = "State persistence error."):
        super().__init__(message)
