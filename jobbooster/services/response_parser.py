"""Extract a JSON object from raw model output.

Models are asked to answer with JSON only, but they regularly wrap the
object in prose ("Sure! {...} Hope that helps.") or get cut off at the
token limit. The extractor scans for the first top-level object with a
small state machine instead of a regex, since a regex cannot balance
arbitrarily nested braces.
"""
import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

logger = logging.getLogger(__name__)

SEEKING_START = "SEEKING_START"
IN_OBJECT = "IN_OBJECT"
IN_STRING = "IN_STRING"
DONE = "DONE"
ERROR = "ERROR"


class ParseError(ValueError):
    pass


class JsonObjectScanner:
    """Character-level scanner locating the first balanced ``{...}``.

    States: SEEKING_START -> IN_OBJECT(depth) <-> IN_STRING -> DONE,
    or ERROR when the input ends first. Braces inside string literals
    do not count towards the depth.
    """

    def __init__(self):
        self.state = SEEKING_START
        self.depth = 0
        self.start = -1
        self.end = -1
        self._escaped = False

    def feed(self, index, char):
        if self.state == SEEKING_START:
            if char == "{":
                self.state = IN_OBJECT
                self.depth = 1
                self.start = index
        elif self.state == IN_OBJECT:
            if char == '"':
                self.state = IN_STRING
            elif char == "{":
                self.depth += 1
            elif char == "}":
                self.depth -= 1
                if self.depth == 0:
                    self.state = DONE
                    self.end = index
        elif self.state == IN_STRING:
            if self._escaped:
                self._escaped = False
            elif char == "\\":
                self._escaped = True
            elif char == '"':
                self.state = IN_OBJECT
        return self.state

    def finish(self):
        if self.state == SEEKING_START:
            self.state = ERROR
            raise ParseError("no JSON object found")
        if self.state != DONE:
            self.state = ERROR
            raise ParseError("incomplete JSON object")

    def scan(self, text):
        for index, char in enumerate(text):
            if self.feed(index, char) == DONE:
                break
        self.finish()
        return text[self.start:self.end + 1]


def extract_json_object(text: str) -> Dict[str, Any]:
    """Return the first JSON object embedded in ``text``.

    Raises:
        ParseError: no opening brace, unbalanced braces, or invalid JSON.
    """
    if not text:
        raise ParseError("no JSON object found")

    candidate = JsonObjectScanner().scan(text)
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON object: {e.msg}") from e


def missing_keys(data: Dict[str, Any], required: Iterable[str]):
    return [key for key in required if key not in data]


# --- Tagged parse outcomes ---

@dataclass
class Ok:
    data: Dict[str, Any]
    degraded: bool = field(default=False, init=False)


@dataclass
class Degraded:
    data: Dict[str, Any]
    reason: str
    degraded: bool = field(default=True, init=False)


@dataclass
class Failed:
    reason: str
    degraded: bool = field(default=False, init=False)


def parse_model_output(text: str, required_keys: Iterable[str] = (), fallback: Optional[Dict[str, Any]] = None):
    """Parse model output into ``Ok``, ``Degraded`` (fallback used) or ``Failed``.

    Callers decide whether a ``Degraded`` result is shown to the user;
    nothing here masks the fallback as a genuine answer.
    """
    required_keys = list(required_keys)
    try:
        data = extract_json_object(text)
    except ParseError as e:
        reason = str(e)
    else:
        missing = missing_keys(data, required_keys)
        if not missing:
            return Ok(data)
        reason = f"missing keys: {', '.join(missing)}"

    logger.warning("Model output rejected: %s", reason)
    if fallback is not None:
        return Degraded(copy.deepcopy(fallback), reason)
    return Failed(reason)
