"""Labeled failures raised by the DDS/JSON conversions."""

from __future__ import annotations

from typing import Optional, Union


class ConversionError(RuntimeError):
    """A hard conversion failure tagged with a kind and the offending subject."""

    kind = "conversion"

    def __init__(self, message: str, *, subject: Optional[Union[str, int]] = None) -> None:
        super().__init__(f"{self.kind}: {message}")
        self.subject = subject


class MissingPayloadError(ConversionError):
    kind = "missing-payload"


class PayloadSerializationError(ConversionError):
    kind = "unserializable-payload"


class DuplicateRecordFormatError(ConversionError):
    kind = "duplicate-record-format"


class NotRichDisplayError(ConversionError):
    kind = "not-rich-display"


class InvalidModelError(ConversionError):
    kind = "invalid-model"


class StoreError(ConversionError):
    kind = "store"


class UnsupportedMethodError(ConversionError):
    kind = "unsupported-method"
