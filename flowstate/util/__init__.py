from .misc import (
    MS_PER_MINUTE,
    MS_PER_SECOND,
    SystemClock,
    format_duration_full,
    format_time,
    generate_id,
    local_to_ms,
    minutes_to_ms,
    ms_to_local,
    now_iso,
    round_up_to_second,
)

__all__ = [
    "MS_PER_MINUTE", "MS_PER_SECOND", "SystemClock", "format_duration_full", "format_time",
    "generate_id", "local_to_ms", "minutes_to_ms", "ms_to_local", "now_iso", "round_up_to_second",
]
