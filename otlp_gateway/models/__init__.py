from .pydantic_models.telemetry import (
    Attribute as Attribute,
    InstrumentationScope as InstrumentationScope,
    Resource as Resource,
    CanonicalSpan as CanonicalSpan,
    CanonicalMetric as CanonicalMetric,
    CanonicalLogRecord as CanonicalLogRecord,
)
