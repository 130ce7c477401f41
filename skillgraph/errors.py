"""Exception hierarchy for skillgraph.

Errors about the engine's ability to run at all (configuration, model
failures, timeouts) propagate to the caller. Errors about a tool's subject
matter are folded into the transcript by the engine.
"""


class SkillGraphError(Exception):
    """Base class for all skillgraph errors."""


class ConfigurationError(SkillGraphError):
    """Raised when the engine or settings are missing a required collaborator."""


class SkillParseError(SkillGraphError, ValueError):
    """Raised when a SKILL.md header is missing or incomplete."""


class SecurityError(SkillGraphError, ValueError):
    """Raised when a path attempts to escape the configured file root."""


class UnknownToolError(SkillGraphError, KeyError):
    """Raised when a tool name does not resolve in the registry."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"unknown tool '{self.name}'"


class ToolInputError(SkillGraphError, ValueError):
    """Raised when tool arguments do not match the declared input schema."""


class ToolError(SkillGraphError):
    """Raised by a tool handler to report a failure to the model."""


class ModelInvocationError(SkillGraphError):
    """Raised when the model client fails to produce a response."""


class TurnTimeoutError(SkillGraphError, TimeoutError):
    """Raised when a turn does not finish within its timeout."""


class IterationLimitError(SkillGraphError):
    """Raised when a turn exceeds the allowed number of model calls."""
