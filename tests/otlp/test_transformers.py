"""
Tests for otlp/transformers: flattening decoded export requests into
canonical records, for JSON-shaped bodies and decoded protobuf bodies.
"""

import base64
import json

from opentelemetry.proto.collector.trace.v1 import trace_service_pb2
from opentelemetry.proto.common.v1 import common_pb2
from opentelemetry.proto.resource.v1 import resource_pb2
from opentelemetry.proto.trace.v1 import trace_pb2

from otlp_gateway.models.pydantic_models.telemetry import (
    CanonicalLogRecord,
    CanonicalMetric,
    CanonicalSpan,
)
from otlp_gateway.otlp.transformers import flatten_logs, flatten_metrics, flatten_spans


def _trace_payload(**overrides) -> dict:
    return {
        "resourceSpans": [
            {
                "resource": {
                    "attributes": [
                        {"key": "service.name", "value": {"stringValue": "agent"}},
                        {"key": "agent.name", "value": {"stringValue": "test-agent"}},
                    ]
                },
                "scopeSpans": [
                    {
                        "scope": {"name": "test-scope"},
                        "spans": [
                            {
                                "traceId": "abcdef1234567890abcdef1234567890",
                                "spanId": "1234567890abcdef",
                                "name": "agent-message-span",
                                "kind": 1,
                                "startTimeUnixNano": "1708070400000000000",
                                "endTimeUnixNano": "1708070401000000000",
                                "attributes": [],
                                "status": {"code": 1},
                                **overrides,
                            }
                        ],
                    }
                ],
            }
        ]
    }


def _log_payload(*records, scope_name="test") -> dict:
    return {
        "resourceLogs": [
            {
                "resource": {
                    "attributes": [
                        {"key": "agent.name", "value": {"stringValue": "bot-1"}}
                    ]
                },
                "scopeLogs": [{"scope": {"name": scope_name}, "logRecords": list(records)}],
            }
        ]
    }


class TestFlattenSpans:
    def test_flattens_json_span(self):
        (span,) = flatten_spans(_trace_payload())

        assert isinstance(span, CanonicalSpan)
        assert span.trace_id == "abcdef1234567890abcdef1234567890"
        assert span.span_id == "1234567890abcdef"
        assert span.parent_span_id is None
        assert span.name == "agent-message-span"
        assert span.kind == 1
        assert span.start_time_unix_nano == 1708070400000000000
        assert span.duration_ms == 1000
        assert span.status == "ok"
        assert span.scope.name == "test-scope"
        assert span.scope.version == ""
        assert [(a.key, a.value) for a in span.resource.attributes] == [
            ("service.name", "agent"),
            ("agent.name", "test-agent"),
        ]

    def test_error_status_and_attributes(self):
        (span,) = flatten_spans(
            _trace_payload(
                status={"code": 2, "message": "Rate limit exceeded"},
                attributes=[
                    {"key": "gen_ai.system", "value": {"stringValue": "anthropic"}},
                    {"key": "gen_ai.usage.input_tokens", "value": {"intValue": 500}},
                ],
            )
        )

        assert span.status == "error"
        assert span.status_message == "Rate limit exceeded"
        assert [(a.key, a.kind, a.value) for a in span.attributes] == [
            ("gen_ai.system", "string", "anthropic"),
            ("gen_ai.usage.input_tokens", "int", 500),
        ]

    def test_events_and_links(self):
        (span,) = flatten_spans(
            _trace_payload(
                parentSpanId="feedfacecafebeef",
                events=[{"timeUnixNano": "5", "name": "retry"}],
                links=[{"traceId": "aa", "spanId": "bb"}],
            )
        )

        assert span.parent_span_id == "feedfacecafebeef"
        assert span.events == ["5 - retry"]
        assert span.links == ["aa-bb"]

    def test_multiple_scopes_and_resources(self):
        payload = _trace_payload()
        payload["resourceSpans"].append(payload["resourceSpans"][0])
        payload["resourceSpans"][0]["scopeSpans"].append(
            {"scope": {"name": "other"}, "spans": [{"traceId": "t", "spanId": "s"}]}
        )

        spans = flatten_spans(payload)

        # first resource carries two scopes, appended resource shares the list
        assert len(spans) == 4
        assert {s.scope.name for s in spans} == {"test-scope", "other"}

    def test_missing_lists_are_empty(self):
        assert flatten_spans(None) == []
        assert flatten_spans({}) == []
        assert flatten_spans({"resourceSpans": [{"scopeSpans": None}]}) == []

    def test_decoded_protobuf_keeps_base64_ids(self, decoder):
        trace_id = bytes(range(16))
        span = trace_pb2.Span(
            trace_id=trace_id,
            span_id=bytes(8),
            name="llm.chat",
            attributes=[
                common_pb2.KeyValue(
                    key="tokens", value=common_pb2.AnyValue(int_value=12)
                )
            ],
        )
        request = trace_service_pb2.ExportTraceServiceRequest(
            resource_spans=[
                trace_pb2.ResourceSpans(
                    resource=resource_pb2.Resource(),
                    scope_spans=[trace_pb2.ScopeSpans(spans=[span])],
                )
            ]
        )
        decoded = decoder.decode_traces(
            "application/x-protobuf", {}, request.SerializeToString()
        )

        (flat,) = flatten_spans(decoded)

        assert flat.trace_id == base64.b64encode(trace_id).decode()
        assert flat.name == "llm.chat"
        assert flat.start_time_unix_nano == 0
        assert [(a.key, a.kind, a.value) for a in flat.attributes] == [
            ("tokens", "int", 12)
        ]


class TestFlattenMetrics:
    def test_gauge_with_int_point(self):
        payload = {
            "resourceMetrics": [
                {
                    "resource": {
                        "attributes": [
                            {"key": "agent.name", "value": {"stringValue": "bot-1"}}
                        ]
                    },
                    "scopeMetrics": [
                        {
                            "scope": {"name": "test"},
                            "metrics": [
                                {
                                    "name": "gen_ai.usage.input_tokens",
                                    "gauge": {
                                        "dataPoints": [
                                            {
                                                "timeUnixNano": "1708000000000000000",
                                                "asInt": 500,
                                            }
                                        ]
                                    },
                                }
                            ],
                        }
                    ],
                }
            ]
        }

        (metric,) = flatten_metrics(payload)

        assert isinstance(metric, CanonicalMetric)
        assert metric.name == "gen_ai.usage.input_tokens"
        assert metric.data_type == "gauge"
        assert metric.data_points[0].value == 500
        assert metric.data_points[0].time_unix_nano == 1708000000000000000

    def test_sum_and_histogram(self):
        payload = {
            "resourceMetrics": [
                {
                    "scopeMetrics": [
                        {
                            "metrics": [
                                {
                                    "name": "gen_ai.usage.output_tokens",
                                    "sum": {
                                        "dataPoints": [
                                            {"asInt": "300"},
                                            {"asDouble": 1.5},
                                        ],
                                        "aggregationTemporality": 1,
                                        "isMonotonic": True,
                                    },
                                },
                                {
                                    "name": "latency",
                                    "histogram": {
                                        "dataPoints": [{"count": "3", "sum": 12.5}]
                                    },
                                },
                            ]
                        }
                    ]
                }
            ]
        }

        output_tokens, latency = flatten_metrics(payload)

        assert output_tokens.data_type == "sum"
        assert [p.value for p in output_tokens.data_points] == [300, 1.5]
        assert latency.data_type == "histogram"
        assert latency.data_points[0].count == 3
        assert latency.data_points[0].value == 12.5

    def test_metric_without_data(self):
        payload = {"resourceMetrics": [{"scopeMetrics": [{"metrics": [{"name": "x"}]}]}]}
        (metric,) = flatten_metrics(payload)
        assert metric.data_type is None
        assert metric.data_points == []

    def test_missing_resource_metrics(self):
        assert flatten_metrics({"resourceMetrics": None}) == []


class TestFlattenLogs:
    def test_single_log_record(self):
        (record,) = flatten_logs(
            _log_payload(
                {
                    "timeUnixNano": "1708000000000000000",
                    "severityText": "info",
                    "body": {"stringValue": "Test log message"},
                    "attributes": [],
                }
            )
        )

        assert isinstance(record, CanonicalLogRecord)
        assert record.severity == "info"
        assert record.body == "Test log message"
        assert record.resource.attributes[0].value == "bot-1"
        assert record.trace_id is None

    def test_falls_back_to_severity_number(self):
        (record,) = flatten_logs(
            _log_payload({"severityNumber": 17, "body": {"stringValue": "Error occurred"}})
        )
        assert record.severity == "error"
        assert record.severity_number == 17

    def test_non_string_body_serialized_as_json(self):
        (record,) = flatten_logs(_log_payload({"body": {"intValue": 42}}))
        assert record.body == '{"intValue":42}'
        assert json.loads(record.body) == {"intValue": 42}

    def test_trace_and_span_ids(self):
        (record,) = flatten_logs(
            _log_payload({"body": {"stringValue": "msg"}, "traceId": "abc123", "spanId": "def456"})
        )
        assert record.trace_id == "abc123"
        assert record.span_id == "def456"

    def test_multiple_records_across_scopes(self):
        payload = _log_payload(
            {"severityText": "info", "body": {"stringValue": "msg1"}},
            {"severityText": "warn", "body": {"stringValue": "msg2"}},
            scope_name="scope1",
        )
        payload["resourceLogs"][0]["scopeLogs"].append(
            {
                "scope": {"name": "scope2"},
                "logRecords": [{"severityText": "error", "body": {"stringValue": "msg3"}}],
            }
        )

        records = flatten_logs(payload)

        assert [r.body for r in records] == ["msg1", "msg2", "msg3"]
        assert [r.scope.name for r in records] == ["scope1", "scope1", "scope2"]

    def test_missing_resource_logs(self):
        assert flatten_logs({"resourceLogs": None}) == []
        assert flatten_logs({}) == []
