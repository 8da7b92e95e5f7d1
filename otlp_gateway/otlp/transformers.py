import json
from typing import Any

from otlp_gateway.models.pydantic_models.telemetry import (
    CanonicalLogRecord,
    CanonicalMetric,
    CanonicalSpan,
    InstrumentationScope,
    MetricDataPoint,
    Resource,
)
from otlp_gateway.otlp.helpers import (
    get_numeric_value,
    severity_number_to_string,
    span_duration_ms,
    span_status_to_string,
    to_attribute_list,
    to_hex_string,
)

# Metric.data oneof, in field-number order
METRIC_DATA_TYPES = ("gauge", "sum", "histogram", "exponentialHistogram", "summary")
NUMBER_DATA_TYPES = frozenset({"gauge", "sum"})


def _resource(resource: dict | None) -> Resource:
    return Resource(attributes=to_attribute_list((resource or {}).get("attributes")))


def _scope(scope: dict | None) -> InstrumentationScope:
    scope = scope or {}
    return InstrumentationScope(
        name=scope.get("name", ""), version=scope.get("version", "")
    )


def flatten_spans(export_request: dict | None) -> list[CanonicalSpan]:
    """
    Walk resourceSpans -> scopeSpans -> spans of a decoded
    ExportTraceServiceRequest and return one CanonicalSpan per span.
    """
    spans = []

    for resource_span in (export_request or {}).get("resourceSpans") or []:
        resource = _resource(resource_span.get("resource"))

        for scope_span in resource_span.get("scopeSpans") or []:
            scope = _scope(scope_span.get("scope"))

            for span in scope_span.get("spans") or []:
                start = int(span.get("startTimeUnixNano", 0))
                end = int(span.get("endTimeUnixNano", 0))
                status = span.get("status") or {}
                parent_span_id = to_hex_string(span.get("parentSpanId"))

                spans.append(
                    CanonicalSpan(
                        resource=resource,
                        scope=scope,
                        trace_id=to_hex_string(span.get("traceId")),
                        span_id=to_hex_string(span.get("spanId")),
                        parent_span_id=parent_span_id or None,
                        trace_state=span.get("traceState", ""),
                        name=span.get("name", ""),
                        kind=int(span.get("kind", 0)),
                        start_time_unix_nano=start,
                        end_time_unix_nano=end,
                        duration_ms=span_duration_ms(start, end),
                        status=span_status_to_string(status.get("code")),
                        status_message=status.get("message", ""),
                        attributes=to_attribute_list(span.get("attributes")),
                        events=[
                            f"{evt.get('timeUnixNano', 0)} - {evt.get('name', '')}"
                            for evt in span.get("events") or []
                        ],
                        links=[
                            f"{to_hex_string(link.get('traceId'))}-"
                            f"{to_hex_string(link.get('spanId'))}"
                            for link in span.get("links") or []
                        ],
                    )
                )

    return spans


def _data_point(point: dict, data_type: str) -> MetricDataPoint:
    if data_type in NUMBER_DATA_TYPES:
        value = get_numeric_value(point)
        count = None
    else:
        value = float(point["sum"]) if point.get("sum") is not None else None
        count = int(point.get("count", 0))

    return MetricDataPoint(
        start_time_unix_nano=int(point.get("startTimeUnixNano", 0)),
        time_unix_nano=int(point.get("timeUnixNano", 0)),
        value=value,
        count=count,
        attributes=to_attribute_list(point.get("attributes")),
    )


def flatten_metrics(export_request: dict | None) -> list[CanonicalMetric]:
    metrics = []

    for resource_metric in (export_request or {}).get("resourceMetrics") or []:
        resource = _resource(resource_metric.get("resource"))

        for scope_metric in resource_metric.get("scopeMetrics") or []:
            scope = _scope(scope_metric.get("scope"))

            for metric in scope_metric.get("metrics") or []:
                data_type = next((t for t in METRIC_DATA_TYPES if t in metric), None)
                points = []
                if data_type:
                    points = (metric[data_type] or {}).get("dataPoints") or []

                metrics.append(
                    CanonicalMetric(
                        resource=resource,
                        scope=scope,
                        name=metric.get("name", ""),
                        description=metric.get("description", ""),
                        unit=metric.get("unit", ""),
                        data_type=data_type,
                        data_points=[_data_point(p, data_type) for p in points],
                    )
                )

    return metrics


def _log_body(body: Any) -> str | None:
    if not body:
        return None
    if "stringValue" in body:
        return str(body["stringValue"])
    return json.dumps(body, separators=(",", ":"))


def flatten_logs(export_request: dict | None) -> list[CanonicalLogRecord]:
    records = []

    for resource_log in (export_request or {}).get("resourceLogs") or []:
        resource = _resource(resource_log.get("resource"))

        for scope_log in resource_log.get("scopeLogs") or []:
            scope = _scope(scope_log.get("scope"))

            for record in scope_log.get("logRecords") or []:
                severity_number = int(record.get("severityNumber", 0))

                records.append(
                    CanonicalLogRecord(
                        resource=resource,
                        scope=scope,
                        time_unix_nano=int(record.get("timeUnixNano", 0)),
                        observed_time_unix_nano=int(
                            record.get("observedTimeUnixNano", 0)
                        ),
                        severity=record.get("severityText")
                        or severity_number_to_string(severity_number),
                        severity_number=severity_number,
                        body=_log_body(record.get("body")),
                        trace_id=to_hex_string(record.get("traceId")) or None,
                        span_id=to_hex_string(record.get("spanId")) or None,
                        attributes=to_attribute_list(record.get("attributes")),
                    )
                )

    return records
