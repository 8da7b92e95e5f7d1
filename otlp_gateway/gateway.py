"""
Reference composition of admission control, decoding and flattening, the
sequence an OTLP ingestion endpoint runs for every request.
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from otlp_gateway.errors import InvalidOtlpPayload
from otlp_gateway.limits.admission import AdmissionController
from otlp_gateway.otlp.decoder import OtlpDecoder
from otlp_gateway.otlp.schema import Signal
from otlp_gateway.otlp.transformers import flatten_logs, flatten_metrics, flatten_spans

logger = logging.getLogger(__name__)

FLATTENERS: dict[Signal, Callable[[Any], list]] = {
    Signal.TRACES: flatten_spans,
    Signal.METRICS: flatten_metrics,
    Signal.LOGS: flatten_logs,
}


@dataclass
class IngestResult:
    signal: Signal
    request: Any
    records: list[BaseModel] = field(default_factory=list)

    @property
    def accepted(self) -> int:
        return len(self.records)


class OtlpGateway:
    def __init__(
        self,
        decoder: OtlpDecoder | None = None,
        admission: AdmissionController | None = None,
    ):
        self.decoder = decoder or OtlpDecoder()
        self.admission = admission or AdmissionController()

    @contextmanager
    def admit(self, principal: str) -> Iterator[None]:
        """Count the request against the quota, then hold a slot for the block."""
        self.admission.check_limit(principal)
        with self.admission.slot(principal):
            yield

    def ingest(
        self,
        signal: Signal | str,
        principal: str,
        content_type: str | None,
        parsed_body: Any,
        raw_body: bytes | None = None,
        content_encoding: str | None = None,
    ) -> IngestResult:
        signal = Signal(signal)

        with self.admit(principal):
            request = self.decoder.decode(
                signal, content_type, parsed_body, raw_body, content_encoding
            )
            try:
                records = FLATTENERS[signal](request)
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(
                    f"Failed to flatten OTLP {signal.value} request from {principal}: {e}"
                )
                raise InvalidOtlpPayload(
                    f"body does not match the OTLP {signal.value} schema"
                ) from e

        if not records:
            logger.info(f"Received an empty {signal.value} request. No data to process.")
        else:
            logger.debug(
                f"Accepted {len(records)} {signal.value} records from {principal}"
            )

        return IngestResult(signal=signal, request=request, records=records)

    def close(self) -> None:
        self.admission.close()
