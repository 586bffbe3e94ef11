"""
SMART Health Card Generator Errors

Failures that stop a generation run or a single example.

Deliberate fault-injection cases are never errors: they always produce
output, and the defects they encode are for a downstream verifier to catch.
"""

from typing import Optional


class GeneratorError(Exception):
    """Base class for generator failures."""


class SourceFetchFailure(GeneratorError):
    """A source bundle is unreachable or malformed. Aborts that example only."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot load bundle from {source}: {reason}")


class KeyMaterialFailure(GeneratorError):
    """
    Signing key file missing, unparseable, or index out of range.

    Fatal for the whole run since no valid output is possible.
    """

    def __init__(self, reason: str, path: Optional[str] = None):
        self.path = path
        self.reason = reason
        where = f" ({path})" if path else ""
        super().__init__(f"Key material unusable{where}: {reason}")


class SerializationFailure(GeneratorError):
    """A document cannot be turned into its JSON string form."""
