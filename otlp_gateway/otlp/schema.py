"""
Compiled OTLP v1 schema.

The message classes come from the official ``opentelemetry-proto``
distribution, so tag numbers, wire types and oneof discriminants match the
upstream .proto files exactly. Importing the generated ``_pb2`` modules
registers every OTLP message in the default descriptor pool; the registry
resolves root request types and descriptors from there.
"""

import logging
import threading
from enum import Enum
from types import MappingProxyType

from google.protobuf import descriptor_pool
from google.protobuf.descriptor import Descriptor
from google.protobuf.message import Message
from opentelemetry.proto.collector.logs.v1 import logs_service_pb2
from opentelemetry.proto.collector.metrics.v1 import metrics_service_pb2
from opentelemetry.proto.collector.trace.v1 import trace_service_pb2

logger = logging.getLogger(__name__)


class Signal(str, Enum):
    TRACES = "traces"
    METRICS = "metrics"
    LOGS = "logs"


class SchemaRegistry:
    """Read-only view of the OTLP schema, keyed by signal."""

    def __init__(self):
        self._pool = descriptor_pool.Default()
        self._roots: MappingProxyType[Signal, type[Message]] = MappingProxyType(
            {
                Signal.TRACES: trace_service_pb2.ExportTraceServiceRequest,
                Signal.METRICS: metrics_service_pb2.ExportMetricsServiceRequest,
                Signal.LOGS: logs_service_pb2.ExportLogsServiceRequest,
            }
        )

    def root_message(self, signal: Signal | str) -> type[Message]:
        """Return the export request class for a signal."""
        return self._roots[Signal(signal)]

    def root_message_name(self, signal: Signal | str) -> str:
        return self.root_message(signal).DESCRIPTOR.full_name

    def message_descriptor(self, full_name: str) -> Descriptor:
        """Look up a message by its fully qualified proto name.

        Raises KeyError when the name is not part of the compiled schema.
        """
        return self._pool.FindMessageTypeByName(full_name)

    def field_number(self, message: str, field: str) -> int:
        return self.message_descriptor(message).fields_by_name[field].number

    def oneof_fields(self, message: str, oneof: str) -> tuple[str, ...]:
        """Names of the fields that make up a oneof, in tag order."""
        fields = self.message_descriptor(message).oneofs_by_name[oneof].fields
        return tuple(f.name for f in sorted(fields, key=lambda f: f.number))


_registry: SchemaRegistry | None = None
_registry_lock = threading.Lock()


def get_schema_registry() -> SchemaRegistry:
    """
    Get the process-wide schema registry, building it on first use.

    Returns:
        The same SchemaRegistry instance on every call
    """
    global _registry

    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = SchemaRegistry()
                logger.info(
                    "OTLP schema registry initialized with roots: "
                    + ", ".join(_registry.root_message_name(s) for s in Signal)
                )

    return _registry
