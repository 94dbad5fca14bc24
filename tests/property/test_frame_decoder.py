"""Property-based tests for newline framing.

However the byte stream is chunked, the decoder yields the same frames
in the same order.
"""

import json

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tether_core.mcp.protocol import FrameDecoder, JSONRPCMessage

json_primitives = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(),
    st.floats(allow_nan=False, allow_infinity=False),
    st.text(max_size=30),
)

json_values = st.recursive(
    json_primitives,
    lambda children: st.one_of(
        st.lists(children, max_size=4),
        st.dictionaries(st.text(max_size=8), children, max_size=4),
    ),
    max_leaves=15,
)

frames_strategy = st.lists(
    st.dictionaries(st.text(min_size=1, max_size=8), json_values, max_size=4),
    min_size=1,
    max_size=8,
)


def _chunk(data: bytes, cuts: list[int]) -> list[bytes]:
    points = sorted({c % (len(data) + 1) for c in cuts})
    chunks, start = [], 0
    for point in points:
        chunks.append(data[start:point])
        start = point
    chunks.append(data[start:])
    return chunks


@pytest.mark.property
class TestFrameDecoderChunking:
    """Chunk boundaries never change the decoded frames."""

    @given(frames_strategy, st.lists(st.integers(min_value=0), max_size=20))
    @settings(max_examples=100)
    def test_any_chunking_yields_same_frames(self, frames, cuts):
        data = b"".join(JSONRPCMessage.encode(f) for f in frames)
        decoder = FrameDecoder()

        decoded = []
        for chunk in _chunk(data, cuts):
            decoded.extend(decoder.feed(chunk))

        assert decoded == frames
        assert decoder.buffered == ""
        assert decoder.malformed_count == 0

    @given(frames_strategy, st.integers(min_value=1, max_value=7))
    @settings(max_examples=50)
    def test_fixed_size_chunks(self, frames, size):
        data = b"".join(JSONRPCMessage.encode(f) for f in frames)
        decoder = FrameDecoder()

        decoded = []
        for i in range(0, len(data), size):
            decoded.extend(decoder.feed(data[i : i + size]))

        assert decoded == frames

    @given(frames_strategy)
    @settings(max_examples=50)
    def test_malformed_line_does_not_affect_neighbours(self, frames):
        lines = [json.dumps(f) for f in frames]
        lines.insert(len(lines) // 2, "{garbage")
        decoder = FrameDecoder()

        decoded = decoder.feed("\n".join(lines) + "\n")

        assert decoded == frames
        assert decoder.malformed_count == 1
