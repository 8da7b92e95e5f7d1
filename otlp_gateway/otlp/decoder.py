import logging
import zlib
from typing import Any

from google.protobuf import json_format
from google.protobuf.message import DecodeError

from otlp_gateway.config import settings
from otlp_gateway.errors import InvalidOtlpPayload, UnsupportedMediaType
from otlp_gateway.otlp.schema import SchemaRegistry, Signal, get_schema_registry

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"
PROTOBUF_MEDIA_TYPE = "application/x-protobuf"


def normalize_content_type(content_type: str | None) -> str:
    """Drop ``;`` parameters, trim and lowercase. None becomes ""."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def _maybe_decompress(
    body: bytes, content_encoding: str | None, max_size: int
) -> bytes:
    # The OTel SDK might send data with gzip compression
    if not (body and content_encoding and "gzip" in content_encoding.lower()):
        return body

    inflater = zlib.decompressobj(16 + zlib.MAX_WBITS)
    try:
        inflated = inflater.decompress(body, max_size + 1)
    except zlib.error as e:
        raise InvalidOtlpPayload(f"invalid gzip body: {e}") from e

    if len(inflated) > max_size:
        logger.warning(f"Rejected gzip body inflating past {max_size} bytes")
        raise InvalidOtlpPayload(f"gzip body inflates past {max_size} bytes")
    if not inflater.eof:
        raise InvalidOtlpPayload("invalid gzip body: truncated stream")
    return inflated


class OtlpDecoder:
    """
    Turns an OTLP export request body into a plain dict.

    JSON bodies are already shaped like the schema and pass through as-is.
    Protobuf bodies are parsed against the signal's root message and
    rendered with OTLP/JSON field names, 64-bit integers as decimal strings
    and bytes (trace and span ids) as base64 strings.

    The decoder holds no mutable state and can be shared between threads.
    """

    def __init__(
        self,
        registry: SchemaRegistry | None = None,
        max_decompressed_bytes: int | None = None,
    ):
        self.registry = registry or get_schema_registry()
        self.max_decompressed_bytes = (
            settings.max_decompressed_bytes
            if max_decompressed_bytes is None
            else max_decompressed_bytes
        )

    def decode(
        self,
        signal: Signal | str,
        content_type: str | None,
        parsed_body: Any,
        raw_body: bytes | None = None,
        content_encoding: str | None = None,
    ) -> Any:
        signal = Signal(signal)
        media_type = normalize_content_type(content_type)

        if media_type == PROTOBUF_MEDIA_TYPE:
            return self._decode_protobuf(signal, raw_body, content_encoding)

        if media_type in ("", JSON_MEDIA_TYPE):
            return parsed_body

        logger.warning(
            f"Rejected OTLP {signal.value} request with content type {media_type}"
        )
        raise UnsupportedMediaType(f"Unsupported content type: {media_type}")

    def _decode_protobuf(
        self,
        signal: Signal,
        raw_body: bytes | None,
        content_encoding: str | None,
    ) -> dict:
        body = _maybe_decompress(
            raw_body or b"", content_encoding, self.max_decompressed_bytes
        )
        if not body:
            logger.warning(
                f"Rejected OTLP {signal.value} request with empty protobuf body"
            )
            raise UnsupportedMediaType("empty protobuf body")

        message = self.registry.root_message(signal)()
        try:
            message.ParseFromString(body)
        except DecodeError as e:
            logger.warning(f"Failed to parse OTLP {signal.value} protobuf body: {e}")
            raise InvalidOtlpPayload(
                f"body is not a valid {message.DESCRIPTOR.name}"
            ) from e

        logger.debug(f"Decoded {len(body)} byte OTLP {signal.value} protobuf body")
        return json_format.MessageToDict(message, use_integers_for_enums=True)

    def decode_traces(
        self,
        content_type: str | None,
        parsed_body: Any,
        raw_body: bytes | None = None,
        content_encoding: str | None = None,
    ) -> Any:
        return self.decode(
            Signal.TRACES, content_type, parsed_body, raw_body, content_encoding
        )

    def decode_metrics(
        self,
        content_type: str | None,
        parsed_body: Any,
        raw_body: bytes | None = None,
        content_encoding: str | None = None,
    ) -> Any:
        return self.decode(
            Signal.METRICS, content_type, parsed_body, raw_body, content_encoding
        )

    def decode_logs(
        self,
        content_type: str | None,
        parsed_body: Any,
        raw_body: bytes | None = None,
        content_encoding: str | None = None,
    ) -> Any:
        return self.decode(
            Signal.LOGS, content_type, parsed_body, raw_body, content_encoding
        )


_default_decoder: OtlpDecoder | None = None


def get_decoder() -> OtlpDecoder:
    global _default_decoder

    if _default_decoder is None:
        _default_decoder = OtlpDecoder()

    return _default_decoder


def decode_traces(content_type, parsed_body, raw_body=None, content_encoding=None):
    return get_decoder().decode_traces(
        content_type, parsed_body, raw_body, content_encoding
    )


def decode_metrics(content_type, parsed_body, raw_body=None, content_encoding=None):
    return get_decoder().decode_metrics(
        content_type, parsed_body, raw_body, content_encoding
    )


def decode_logs(content_type, parsed_body, raw_body=None, content_encoding=None):
    return get_decoder().decode_logs(
        content_type, parsed_body, raw_body, content_encoding
    )
