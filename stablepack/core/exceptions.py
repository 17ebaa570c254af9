# -----------------------------------------------------------------------------
# /*
#  * Copyright (C) 2025 CodeStory
#  *
#  * This program is free software; you can redistribute it and/or modify
#  * it under the terms of the GNU General Public License as published by
#  * the Free Software Foundation; Version 2.
#  *
#  * This program is distributed in the hope that it will be useful,
#  * but WITHOUT ANY WARRANTY; without even the implied warranty of
#  * MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
#  * GNU General Public License for more details.
#  *
#  * You should have received a copy of the GNU General Public License
#  * along with this program; if not, you can contact us at support@codestory.build
#  */
# -----------------------------------------------------------------------------

"""
Custom exception hierarchy for the stablepack bundler.

Fatal errors (GraphError, SerializationError, BuildCancelledError,
ConfigurationError, ValidationError) abort the whole build transaction.
OrphanModuleError and CacheCorruptionError are recoverable: the build
orchestrator logs them and carries on.
"""

import functools

import typer
from loguru import logger


class StablepackError(Exception):
    """
    Base exception for all stablepack-related errors.

    All stablepack-specific exceptions should inherit from this class
    to enable consistent error handling throughout the application.
    """

    def __init__(self, message: str, details: str | None = None):
        """
        Initialize a StablepackError.

        Args:
            message: Main error message for the user
            details: Additional technical details for logging
        """
        self.message = message
        self.details = details
        super().__init__(message)


class GraphError(StablepackError):
    """
    The module graph cannot be bundled.

    Raised when an entry point is unreachable, a required root module is
    missing, a dependency edge points nowhere or the chunk graph is cyclic.
    """

    def __init__(
        self, message: str, details: str | None = None, module_id: str | None = None
    ):
        super().__init__(message, details)
        self.module_id = module_id


class OrphanModuleError(StablepackError):
    """A module that no declared root reaches. Reported, then excluded."""

    def __init__(self, module_id: str):
        super().__init__(
            f"Orphan module: {module_id}",
            "No entry point, shared root or dynamic boundary reaches this module",
        )
        self.module_id = module_id


class CacheCorruptionError(StablepackError):
    """
    A cache entry does not match a recomputation of its own content.

    Keys are content addressed so this points at a damaged cache, never at
    a stale one. The entry is evicted and the chunk recomputed.
    """

    def __init__(self, key: str, details: str | None = None):
        super().__init__(f"Corrupt cache entry: {key}", details)
        self.key = key


class SerializationError(StablepackError):
    """Chunk content could not be produced or written."""

    def __init__(
        self, message: str, details: str | None = None, chunk_name: str | None = None
    ):
        super().__init__(message, details)
        self.chunk_name = chunk_name


class BuildCancelledError(StablepackError):
    """Raised when a build is aborted between chunk computations."""

    pass


class ConfigurationError(StablepackError):
    """
    Configuration-related errors.

    Raised when configuration files are invalid, missing,
    or contain incompatible settings.
    """

    pass


class ValidationError(StablepackError):
    """
    Input validation errors.

    Raised when user input fails validation checks,
    such as malformed metadata pairs or unknown config keys.
    """

    pass


# Convenience functions for creating common errors
def missing_module(module_id: str, referenced_by: str) -> GraphError:
    """Create a GraphError for a module the graph does not contain."""
    return GraphError(
        f"Missing module: {module_id}",
        f"Referenced by {referenced_by}, but the module graph does not contain it",
        module_id=module_id,
    )


def unreachable_entry(entry_name: str) -> GraphError:
    """Create a GraphError for an entry point without roots."""
    return GraphError(
        f"Entry point '{entry_name}' is unreachable",
        "An entry point must name at least one root module",
    )


def chunk_cycle(chunk_names: list[str]) -> GraphError:
    """Create a GraphError for a cycle between chunks."""
    return GraphError(
        f"Cyclic chunk dependencies: {' -> '.join(chunk_names)}",
        "Chunks must form an acyclic graph; check the shared and dynamic roots",
    )


def path_not_found(path: str) -> ValidationError:
    """Create a ValidationError for non-existent paths."""
    return ValidationError(
        f"Path not found: {path}",
        "Please check that the path exists and is accessible",
    )


def handle_stablepack_exception(func):
    """Log StablepackErrors raised by a CLI command and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except StablepackError as e:
            logger.error(f"[red]Error:[/red] {e.message}")
            if e.details:
                logger.info(e.details)
            logger.debug(f"{type(e).__name__} raised from {func.__name__}")
            raise typer.Exit(1)

    return wrapper
