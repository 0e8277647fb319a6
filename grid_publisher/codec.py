"""Encode grid documents as self-describing ``data:`` URIs and back.

The stored value is ``data:application/json;base64,<payload>`` where the
payload is the base64 of the canonical JSON form of the document. Canonical
means sorted keys, compact separators and UTF-8 text, so equal documents
always produce byte-identical URIs.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Union

from pydantic import ValidationError

from .constants import MEDIA_TYPE, TRANSFER_ENCODING, URI_SCHEME
from .errors import DecodingError, EncodingError
from .models import GridDocument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncodedURI:
    """A tagged ``data:`` URI value."""

    payload: bytes
    media_type: str = MEDIA_TYPE
    transfer_encoding: str = TRANSFER_ENCODING

    def render(self) -> str:
        try:
            text = self.payload.decode("ascii")
        except UnicodeDecodeError as exc:
            raise EncodingError("URI payload is not ASCII text") from exc
        return f"{URI_SCHEME}:{self.media_type};{self.transfer_encoding},{text}"

    def to_bytes(self) -> bytes:
        """UTF-8 bytes of :meth:`render`; this is the value written on chain."""

        try:
            return self.render().encode("utf-8")
        except UnicodeEncodeError as exc:
            raise EncodingError("URI rendering cannot be represented as bytes") from exc

    def __str__(self) -> str:
        return self.render()


def canonical_json(document: GridDocument) -> bytes:
    try:
        text = json.dumps(
            document.to_payload(),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
        return text.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise EncodingError(f"Grid document contains text that is not valid UTF-8: {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"Grid document is not serializable: {exc}") from exc


def _coerce_document(document: Union[GridDocument, Mapping[str, Any]]) -> GridDocument:
    if isinstance(document, GridDocument):
        return document
    if not isinstance(document, Mapping):
        raise EncodingError(f"Expected a grid document, got {type(document).__name__}")
    try:
        return GridDocument.model_validate(dict(document))
    except ValidationError as exc:
        raise EncodingError(f"Invalid grid document: {exc}") from exc


def encode(document: Union[GridDocument, Mapping[str, Any]]) -> EncodedURI:
    """Encode ``document`` as a base64 JSON ``data:`` URI."""

    grid = _coerce_document(document)
    body = canonical_json(grid)
    uri = EncodedURI(payload=base64.b64encode(body))
    logger.debug(
        "Encoded grid document",
        extra={"items": len(grid.items), "json_bytes": len(body), "uri_length": len(uri.payload)},
    )
    return uri


def parse_uri(value: Union[EncodedURI, str, bytes]) -> EncodedURI:
    """Split a rendered URI into its tagged parts."""

    if isinstance(value, EncodedURI):
        return value
    if isinstance(value, (bytes, bytearray)):
        try:
            value = bytes(value).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodingError("Stored value is not UTF-8 text") from exc
    prefix = f"{URI_SCHEME}:"
    if not value.startswith(prefix) or "," not in value:
        raise DecodingError("Stored value is not a data: URI")
    header, _, body = value[len(prefix):].partition(",")
    media_type, _, transfer_encoding = header.partition(";")
    if media_type != MEDIA_TYPE:
        raise DecodingError(f"Unsupported media type {media_type!r}")
    if transfer_encoding != TRANSFER_ENCODING:
        raise DecodingError(f"Unsupported transfer encoding {transfer_encoding!r}")
    try:
        payload = body.encode("ascii")
    except UnicodeEncodeError as exc:
        raise DecodingError("URI payload is not base64 text") from exc
    return EncodedURI(payload=payload, media_type=media_type, transfer_encoding=transfer_encoding)


def decode_payload(value: Union[EncodedURI, str, bytes]) -> Any:
    """Return the raw JSON value carried by a URI, without model validation."""

    uri = parse_uri(value)
    try:
        body = base64.b64decode(uri.payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodingError("URI payload is not valid base64") from exc
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodingError("URI payload is not valid JSON") from exc


def decode(value: Union[EncodedURI, str, bytes]) -> GridDocument:
    """Parse a stored URI back into a :class:`GridDocument`."""

    raw = decode_payload(value)
    if not isinstance(raw, dict):
        raise DecodingError("URI payload is not a grid document object")
    try:
        return GridDocument.model_validate(raw)
    except ValidationError as exc:
        raise DecodingError(f"URI payload is not a grid document: {exc}") from exc


__all__ = ["EncodedURI", "canonical_json", "decode", "decode_payload", "encode", "parse_uri"]
