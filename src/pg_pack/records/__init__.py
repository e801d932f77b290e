"""Record streaming: value encoding, handoff channel, per-table streamer.

Usage:
    from pg_pack.records import RecordStreamer, encode_value
"""

from pg_pack.records.channel import ErrorFragment, RecordChannel
from pg_pack.records.encoder import encode_row, encode_value
from pg_pack.records.streamer import RecordStreamer

__all__ = [
    "RecordStreamer",
    "RecordChannel",
    "ErrorFragment",
    "encode_value",
    "encode_row",
]
