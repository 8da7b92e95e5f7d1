from .schema import (
    Signal as Signal,
    SchemaRegistry as SchemaRegistry,
    get_schema_registry as get_schema_registry,
)
from .decoder import (
    OtlpDecoder as OtlpDecoder,
    normalize_content_type as normalize_content_type,
    decode_traces as decode_traces,
    decode_metrics as decode_metrics,
    decode_logs as decode_logs,
)
