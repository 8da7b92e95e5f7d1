from typing import Any, Literal
from pydantic import BaseModel, Field

# Tags of the AnyValue oneof, in field-number order
AttributeKind = Literal["string", "bool", "int", "double", "array", "kvlist", "bytes"]


class Attribute(BaseModel):
    """One KeyValue with its AnyValue variant made explicit.

    ``kind`` names the populated variant; ``value`` is its Python form
    (str, bool, int, float, list, dict or bytes).
    """

    key: str
    kind: AttributeKind
    value: Any


class InstrumentationScope(BaseModel):
    name: str = ""
    version: str = ""


class Resource(BaseModel):
    attributes: list[Attribute] = Field(default_factory=list)


class CanonicalSpan(BaseModel):
    resource: Resource
    scope: InstrumentationScope
    trace_id: str
    span_id: str
    parent_span_id: str | None = None
    trace_state: str = ""
    name: str = ""
    kind: int = 0
    start_time_unix_nano: int = 0
    end_time_unix_nano: int = 0
    duration_ms: float = 0.0
    status: str = "ok"
    status_message: str = ""
    attributes: list[Attribute] = Field(default_factory=list)
    events: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)


class MetricDataPoint(BaseModel):
    start_time_unix_nano: int = 0
    time_unix_nano: int = 0
    # Gauge/sum points carry their number; histogram/summary points their sum
    value: int | float | None = None
    count: int | None = None
    attributes: list[Attribute] = Field(default_factory=list)


class CanonicalMetric(BaseModel):
    resource: Resource
    scope: InstrumentationScope
    name: str = ""
    description: str = ""
    unit: str = ""
    # Populated variant of Metric.data, e.g. "gauge" or "exponentialHistogram"
    data_type: str | None = None
    data_points: list[MetricDataPoint] = Field(default_factory=list)


class CanonicalLogRecord(BaseModel):
    resource: Resource
    scope: InstrumentationScope
    time_unix_nano: int = 0
    observed_time_unix_nano: int = 0
    severity: str = "unspecified"
    severity_number: int = 0
    body: str | None = None
    trace_id: str | None = None
    span_id: str | None = None
    attributes: list[Attribute] = Field(default_factory=list)
