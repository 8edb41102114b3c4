from dspfjson.json_tools import (
    Balance,
    ParseStatus,
    attempt_parse,
    dump_payload,
    escape_quotes,
    track_balance,
    unescape_quotes,
)


def test_quote_escaping_round_trip():
    text = "it's 'quoted' '' already"
    escaped = escape_quotes(text)
    assert "'" not in escaped.replace("''", "")
    assert unescape_quotes(escaped) == text


def test_dump_payload_is_compact_and_keeps_unicode():
    assert dump_payload({"a": [1, 2], "b": "ü"}) == '{"a":[1,2],"b":"ü"}'


def test_attempt_parse_success_unescapes():
    attempt = attempt_parse('{"value":"Customer\'\'s name"}')
    assert attempt.ok
    assert attempt.value == {"value": "Customer's name"}


def test_attempt_parse_incomplete():
    attempt = attempt_parse('{"screen":{"record format name":"REC')
    assert attempt.status is ParseStatus.INCOMPLETE
    assert not attempt.ok
    assert attempt.error


def test_attempt_parse_malformed():
    attempt = attempt_parse('{"screen":}')
    assert attempt.status is ParseStatus.MALFORMED


def test_balance_tracks_pieces_and_strings():
    state = track_balance(Balance(), '{"a":"}')
    assert state.in_str
    assert not state.balanced
    state = track_balance(state, '\\"]"}')
    assert state.balanced
    assert track_balance(Balance(), '{"a":[1,').depth == 2


def test_balance_carries_escape_across_pieces():
    state = track_balance(Balance(), '{"a":"x\\')
    assert state.esc
    state = track_balance(state, '""}')
    assert state.balanced
    assert not state.esc


def test_attempt_parse_uses_given_balance():
    attempt = attempt_parse('{"a":1}', Balance(depth=1, started=True))
    assert attempt.status is ParseStatus.INCOMPLETE
