"""Convert XML dataset fixtures into CSV fixtures."""

__version__ = "0.1.0"

from dataset2csv.converter import convert  # noqa: E402
from dataset2csv.errors import ConversionError, MalformedInputError, StructureError  # noqa: E402

__all__ = ["convert", "ConversionError", "MalformedInputError", "StructureError", "__version__"]
