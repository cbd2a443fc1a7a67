import pytest

from blockview.core.model import (
    AccessCredential, BlockAccessError, BlockDescriptor, NoCandidatesError,
    NoReachableReplicaError, ReadRange, ReadResult, ReplicaEndpoint,
    SessionOpenError, TransientReadFailureError,
)
from blockview.core.util import chunk_size_to_view, result_asdict, split_lines


class TestReadRange:
    """Test range validation and clipping to the block."""

    def test_effective_length_within_block(self):
        block = BlockDescriptor(1, 1001, 100)
        assert ReadRange(10, 20).effective_length(block) == 20

    def test_effective_length_clipped_to_block_end(self):
        """Requests running past the end are clipped, not rejected."""
        block = BlockDescriptor(1, 1001, 100)
        assert ReadRange(90, 50).effective_length(block) == 10
        assert ReadRange(100, 50).effective_length(block) == 0

    def test_zero_length(self):
        block = BlockDescriptor(1, 1001, 100)
        assert ReadRange(5, 0).effective_length(block) == 0

    def test_offset_past_block_end(self):
        block = BlockDescriptor(1, 1001, 100)
        with pytest.raises(ValueError, match="past the end"):
            ReadRange(101, 1).effective_length(block)

    def test_negative_values(self):
        with pytest.raises(ValueError, match="Start offset cannot be negative"):
            ReadRange(-1, 5)
        with pytest.raises(ValueError, match="Length cannot be negative"):
            ReadRange(0, -5)

    def test_negative_block_length(self):
        with pytest.raises(ValueError):
            BlockDescriptor(1, 1, -1)


class TestReplicaEndpoint:
    """Test endpoint parsing and formatting."""

    def test_parse(self):
        ep = ReplicaEndpoint.parse("dn1.example.com:50010")
        assert ep == ReplicaEndpoint("dn1.example.com", 50010)
        assert ep.address == ("dn1.example.com", 50010)
        assert str(ep) == "dn1.example.com:50010"

    def test_parse_ipv6(self):
        assert ReplicaEndpoint.parse("[::1]:50010") == ReplicaEndpoint("::1", 50010)

    @pytest.mark.parametrize("text", ["dn1", "dn1:", ":50010", "dn1:port"])
    def test_parse_invalid(self, text):
        with pytest.raises(ValueError, match="expected HOST:PORT"):
            ReplicaEndpoint.parse(text)

    @pytest.mark.parametrize("text", ["127.0.0.1:70000", "dn1:65536", "dn1:0"])
    def test_parse_port_out_of_range(self, text):
        with pytest.raises(ValueError, match="Port out of range"):
            ReplicaEndpoint.parse(text)

    def test_port_range_checked_on_construction(self):
        assert ReplicaEndpoint("dn1", 65535).port == 65535
        with pytest.raises(ValueError, match="Port out of range"):
            ReplicaEndpoint("dn1", -1)

    def test_hashable_and_immutable(self):
        ep = ReplicaEndpoint("a", 1)
        assert {ep, ReplicaEndpoint("a", 1)} == {ep}
        with pytest.raises(AttributeError):
            ep.port = 2


class TestAccessCredential:
    def test_repr_hides_token(self):
        """The token never shows up in reprs, and so never in logs."""
        cred = AccessCredential(b"super-secret")
        assert "super-secret" not in repr(cred)
        assert cred.token == b"super-secret"


class TestErrors:
    def test_hierarchy(self):
        """All surfaced errors are IOErrors sharing one base class."""
        for cls in (NoCandidatesError, NoReachableReplicaError,
                    TransientReadFailureError, SessionOpenError):
            assert issubclass(cls, BlockAccessError)
            assert issubclass(cls, IOError)

    def test_session_open_error_status(self):
        err = SessionOpenError("refused", status=5)
        assert err.status == 5
        assert str(err) == "refused"


class TestSplitLines:
    """Test line splitting with block offsets."""

    def test_offsets_from_block_start(self):
        assert split_lines(b"abc\nde\nf", 0) == [("abc", 0), ("de", 4), ("f", 7)]

    def test_offsets_from_nonzero_start(self):
        assert split_lines(b"abc\nde", 1000) == [("abc", 1000), ("de", 1004)]

    def test_blank_lines_keep_offsets_exact(self):
        assert split_lines(b"a\n\nb", 0) == [("a", 0), ("", 2), ("b", 3)]

    def test_trailing_delimiter(self):
        assert split_lines(b"abc\n", 0) == [("abc", 0)]

    def test_empty(self):
        assert split_lines(b"", 0) == []

    def test_offsets_count_bytes_not_characters(self):
        """Multi-byte characters advance the offset by their encoded size."""
        data = "é\nx".encode("utf-8")
        assert split_lines(data, 0) == [("é", 0), ("x", 3)]


class TestChunkSizeToView:
    def test_positive_value_kept(self):
        assert chunk_size_to_view(100, 32768) == 100
        assert chunk_size_to_view("100", 32768) == 100

    def test_default_on_missing_or_non_positive(self):
        assert chunk_size_to_view(None, 32768) == 32768
        assert chunk_size_to_view(0, 32768) == 32768
        assert chunk_size_to_view(-4, 32768) == 32768


class TestResultAsDict:
    """Test the result_asdict utility function."""

    def _ok(self, **kw):
        fields = dict(success=True, endpoint=ReplicaEndpoint("dn1", 50010), offset=4,
                      data=b"hello", lines=None, error=None, bytes_fetched=5)
        fields.update(kw)
        return ReadResult(**fields)

    def test_successful_result_base64(self):
        assert result_asdict(self._ok()) == {
            "success": True,
            "endpoint": "dn1:50010",
            "offset": 4,
            "bytes_fetched": 5,
            "data_b64": "aGVsbG8=",
        }

    def test_successful_result_text(self):
        assert result_asdict(self._ok(), as_text=True)["text"] == "hello"

    def test_lines(self):
        res = self._ok(data=b"ab\nc", lines=[("ab", 4), ("c", 7)], bytes_fetched=4)
        out = result_asdict(res)
        assert out["lines"] == [{"offset": 4, "text": "ab"}, {"offset": 7, "text": "c"}]
        assert "data_b64" not in out

    def test_failed_result(self):
        res = ReadResult(success=False, endpoint=None, offset=0, data=None, lines=None,
                         error="no nodes reachable", bytes_fetched=0)
        assert result_asdict(res) == {
            "success": False, "error": "no nodes reachable", "bytes_fetched": 0,
        }
