"""
otlp_gateway: ingestion core for OpenTelemetry traces, metrics and logs.

This package decodes OTLP v1 export requests arriving as JSON or binary
protobuf, flattens them into canonical resource/scope-scoped records, and
gates each request through per-principal rate and concurrency limits.

HTTP routing, authentication and persistence live outside this package;
an ingestion endpoint wires them to `OtlpGateway` (or to the decoder and
admission controller directly).
"""
