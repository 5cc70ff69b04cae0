import json

import pytest

from jobbooster.services.response_parser import (
    DONE, ERROR, IN_OBJECT, IN_STRING, SEEKING_START, Degraded, Failed, JsonObjectScanner, Ok, ParseError,
    extract_json_object, parse_model_output,
)


def test_scanner_transitions():
    scanner = JsonObjectScanner()
    assert scanner.state == SEEKING_START
    assert scanner.feed(0, "x") == SEEKING_START
    assert scanner.feed(1, "{") == IN_OBJECT
    assert scanner.depth == 1
    assert scanner.feed(2, '"') == IN_STRING
    assert scanner.feed(3, "}") == IN_STRING  # braces inside strings do not count
    assert scanner.feed(4, '"') == IN_OBJECT
    assert scanner.feed(5, "{") == IN_OBJECT
    assert scanner.depth == 2
    assert scanner.feed(6, "}") == IN_OBJECT
    assert scanner.feed(7, "}") == DONE
    assert (scanner.start, scanner.end) == (1, 7)


def test_scanner_escaped_quote_stays_in_string():
    scanner = JsonObjectScanner()
    for index, char in enumerate('{"a\\"'):
        scanner.feed(index, char)
    assert scanner.state == IN_STRING


def test_scanner_finish_without_object():
    scanner = JsonObjectScanner()
    scanner.feed(0, "a")
    with pytest.raises(ParseError, match="no JSON object found"):
        scanner.finish()
    assert scanner.state == ERROR


@pytest.mark.parametrize("payload", [
    {"a": 1},
    {"nested": {"deep": {"list": [1, 2, {"x": "}"}]}}},
    {"text": "brace { inside", "quote": "say \"hi\""},
])
def test_prose_wrapped_object_parses_like_bare_json(payload):
    raw = json.dumps(payload)
    wrapped = "Sure! " + raw + " Hope that helps."
    assert extract_json_object(wrapped) == extract_json_object(raw) == payload


def test_only_first_object_is_taken():
    assert extract_json_object('{"a": 1} and {"b": 2}') == {"a": 1}


def test_truncated_output_is_incomplete():
    with pytest.raises(ParseError, match="incomplete JSON object"):
        extract_json_object('{"a": {"b": 1')


@pytest.mark.parametrize("text", ["", "no json here", "] [ ]"])
def test_missing_object(text):
    with pytest.raises(ParseError, match="no JSON object found"):
        extract_json_object(text)


def test_balanced_but_invalid_json():
    with pytest.raises(ParseError, match="invalid JSON object"):
        extract_json_object("{'single': 'quotes'}")


def test_parse_model_output_ok():
    result = parse_model_output('Here: {"skills": [], "keywords": []}', required_keys=["skills"])
    assert isinstance(result, Ok)
    assert result.degraded is False
    assert result.data == {"skills": [], "keywords": []}


def test_parse_model_output_missing_keys_uses_fallback():
    fallback = {"skills": ["Python"]}
    result = parse_model_output('{"other": 1}', required_keys=["skills"], fallback=fallback)
    assert isinstance(result, Degraded)
    assert result.degraded is True
    assert result.reason == "missing keys: skills"
    assert result.data == fallback
    result.data["skills"].append("Go")
    assert fallback == {"skills": ["Python"]}


def test_parse_model_output_failed_without_fallback():
    result = parse_model_output('{"a": ', required_keys=["a"])
    assert isinstance(result, Failed)
    assert result.reason == "incomplete JSON object"
