"""Exceptions raised while converting a dataset fixture."""

from __future__ import annotations

from typing import Optional


class ConversionError(Exception):
    """Base class for every fatal conversion failure."""


class MalformedInputError(ConversionError):
    """The XML input is not well-formed or does not follow the dataset grammar."""

    def __init__(self, message: str, position: Optional[int] = None) -> None:
        super().__init__(message)
        self.position = position


class StructureError(ConversionError):
    """The records are well-formed but cannot be laid out as CSV tables."""
