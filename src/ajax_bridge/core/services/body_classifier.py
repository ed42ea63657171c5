"""
Media-type rules deciding how a response body should be decoded.

Each rule pairs a MIME predicate with the decoded kind it stands for, an
optional expected-result hint (``dataType``) that also selects it, and an
optional descriptor flag that must be set before the rule may apply at all.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from ajax_bridge.core.domain.body import BodyKind
from ajax_bridge.core.domain.request import RequestDescriptor
from ajax_bridge.core.interfaces.transport_interface import IFetchResponse

JSON_MIME = "application/json"
FORM_URLENCODED_MIME = "application/x-www-form-urlencoded"

_JSON_RE = re.compile(r"^application/json", re.IGNORECASE)
_TEXT_RE = re.compile(r"^text/", re.IGNORECASE)
# e.g. "application/pdf; encoding=base64; charset=UTF-8" is text, not binary
_BASE64_RE = re.compile(r";\s*encoding=base64", re.IGNORECASE)
_BINARY_RE = re.compile(
    r"^(application/(pdf|octet-stream|ogg)|image|audio|video)", re.IGNORECASE
)
_FORM_DATA_RE = re.compile(
    r"^(multipart/form-data|application/x-www-form-urlencoded)", re.IGNORECASE
)
_FORM_URLENCODED_RE = re.compile(r"^application/x-www-form-urlencoded", re.IGNORECASE)


def is_type_json(mime: str | None) -> bool:
    return bool(mime) and bool(_JSON_RE.match(mime))


def is_type_text(mime: str | None) -> bool:
    return bool(mime) and bool(_TEXT_RE.match(mime) or _BASE64_RE.search(mime))


def is_type_binary(mime: str | None) -> bool:
    return bool(mime) and bool(_BINARY_RE.match(mime))


def is_type_form_data(mime: str | None) -> bool:
    return bool(mime) and bool(_FORM_DATA_RE.match(mime))


def is_type_blob(mime: str | None) -> bool:
    return True


def is_form_urlencoded(mime: str | None) -> bool:
    return bool(mime) and bool(_FORM_URLENCODED_RE.match(mime))


@dataclass(frozen=True)
class BodyTypeRule:
    kind: BodyKind
    matches: Callable[[str | None], bool]
    response_type: str | None = None
    required_flag: str | None = None


JSON_RULE = BodyTypeRule(BodyKind.JSON, is_type_json)
TEXT_RULE = BodyTypeRule(BodyKind.TEXT, is_type_text, response_type="text")
BINARY_RULE = BodyTypeRule(BodyKind.BINARY, is_type_binary, response_type="arraybuffer")
FORM_DATA_RULE = BodyTypeRule(BodyKind.FORM_DATA, is_type_form_data)
BLOB_RULE = BodyTypeRule(BodyKind.BLOB, is_type_blob, required_flag="use_blob")


def can_read_body(
    response: IFetchResponse,
    rule: BodyTypeRule,
    descriptor: RequestDescriptor,
    request_headers: Mapping[str, str],
) -> bool:
    """Decide whether ``response`` should be decoded according to ``rule``.

    The response content-type is checked first; only when the response has
    none does the request's Accept header stand in for it. The descriptor's
    ``data_type`` hint selects a rule on its own. A consumed body never
    matches.
    """
    if response.body_used:
        return False

    if rule.required_flag and not getattr(descriptor, rule.required_flag, False):
        return False

    content_type = response.headers.get("content-type")
    if rule.matches(content_type):
        return True
    if not content_type and rule.matches(request_headers.get("accept")):
        return True
    return rule.response_type is not None and descriptor.data_type == rule.response_type
