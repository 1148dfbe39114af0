from coderunner.core.utils import decode, sanitize


def test_removes_every_occurrence():
    text = "/sbx/abc/abc.py: error in /sbx/abc/abc.py (abc)"
    out = sanitize(text, ["/sbx/abc/abc.py", "abc"])
    assert "abc" not in out
    assert "/sbx/abc/abc.py" not in out
    assert out == ": error in  ()"


def test_full_path_removed_before_inner_id():
    text = 'File "/tmp/sbx/1f2e/1f2e.py", line 3, in <module>'
    out = sanitize(text, ["1f2e", "/tmp/sbx/1f2e/1f2e.py", "/tmp/sbx/1f2e"])
    assert out == 'File "", line 3, in <module>'


def test_spliced_occurrence_is_removed_too():
    # xoá "ab" khỏi "aabb" ghép ra "ab" mới
    assert sanitize("aabb", ["ab"]) == ""


def test_empty_inputs():
    assert sanitize("", ["x"]) == ""
    assert sanitize("keep me", [""]) == "keep me"
    assert sanitize("keep me", []) == "keep me"


def test_decode_cut_inside_multibyte_char_stays_within_limit():
    data = "ab€".encode("utf-8")  # € = 3 byte
    out = decode(data, 3)
    assert len(out.encode("utf-8")) <= 3
    assert out == "ab"


def test_decode_invalid_bytes_stay_within_limit():
    data = b"\xff\xfe\xfd\xfc"
    for limit in range(1, 5):
        out = decode(data, limit)
        assert len(out.encode("utf-8")) <= limit


def test_decode_replaces_invalid_bytes_when_room():
    assert decode(b"ok\xff", 10) == "ok�"
    assert decode("xin chào".encode("utf-8")) == "xin chào"
