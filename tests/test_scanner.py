import time

from dspfjson.dds_render import render_payload
from dspfjson.scanner import scan_document, scan_keywords, scan_payloads

from samples import field, header, keyword_line, payload, payload_lines, sample_document, sample_payloads


def test_keywords_stop_at_first_record_format():
    lines = sample_document()
    assert scan_keywords(lines) == ["DSPSIZ(27 132 *DS4)", "INDARA", "ALLINONE"]
    assert scan_keywords([header("RECFMT1"), keyword_line("INDARA")]) == []


def test_single_line_payload():
    line = "     A" + " " * 32 + "  1  2" + "HTML('{\"screen\":{\"record format name\":\"RECFMT1\"},\"items\":[]}')"
    result = scan_payloads([header("RECFMT1"), line])
    assert result.formats == [{"screen": {"record format name": "RECFMT1"}, "items": []}]
    assert result.payloads[0].line_index == 1
    assert not result.dropped


def test_document_payloads_in_order():
    result = scan_document(sample_document())
    assert result.formats == sample_payloads()
    assert [p.record_format for p in result.payloads] == ["RECFMT1", "SFL01"]
    assert result.payload_for("sfl01") == sample_payloads()[1]
    assert result.payload_for("NOPE") is None
    assert "ALLINONE" in result.keywords


def test_multi_chunk_payload_with_quotes():
    value = payload("RECFMT1", [{"value": "it's " * 80}])
    lines = [header("RECFMT1")] + payload_lines(value, chunk_size=150)
    assert scan_payloads(lines).formats == [value]


def test_malformed_region_is_dropped_and_logged():
    messages = []
    lines = [
        header("BAD"),
        keyword_line("HTML('{\"screen\":}')"),
        header("RECFMT2"),
    ] + payload_lines(payload("RECFMT2"))
    result = scan_payloads(lines, log=messages.append)
    assert result.formats == [payload("RECFMT2")]
    assert len(result.dropped) == 1
    assert result.dropped[0].record_format == "BAD"
    assert any(m.startswith("[SCAN] dropped") for m in messages)


def test_unterminated_region_is_dropped_at_end():
    lines = [header("RECFMT1"), payload_lines(payload("RECFMT1", [{"id": "x" * 80}]))[0]]
    result = scan_payloads(lines)
    assert result.formats == []
    assert "end of document" in result.dropped[0].reason


def test_scanning_is_repeatable():
    lines = sample_document()
    assert scan_document(lines) == scan_document(lines)


def test_unparsable_single_line_tag_does_not_swallow_fields():
    lines = [
        header("RECFMT1"),
        keyword_line("HTML('{\"items\":[1,,2]}')"),
        field("FLD1", "H"),
    ] + payload_lines(payload("RECFMT1"))
    result = scan_payloads(lines)
    assert result.dropped[0].line_index == 1
    assert "single-line" in result.dropped[0].reason
    assert result.formats == [payload("RECFMT1")]


def test_large_payload_scans_in_linear_time():
    value = payload("RECFMT1", [{"id": f"Item{i}", "value": "x" * 200} for i in range(5000)])
    lines = [header("RECFMT1")] + render_payload(value, "  1  2")
    assert sum(len(line) for line in lines) > 1_000_000

    started = time.perf_counter()
    result = scan_payloads(lines)
    elapsed = time.perf_counter() - started

    assert result.formats == [value]
    assert elapsed < 10
