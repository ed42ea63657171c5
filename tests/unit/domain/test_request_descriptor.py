import pytest
from ajax_bridge.core.domain.body import Blob, MultipartForm
from ajax_bridge.core.domain.request import RequestDescriptor
from pydantic import ValidationError


def test_legacy_aliases_are_accepted() -> None:
    descriptor = RequestDescriptor.model_validate(
        {
            "url": "http://a.com/foo",
            "type": "post",
            "dataType": "JSON",
            "useBlob": True,
            "referrerPolicy": "no-referrer",
        }
    )

    assert descriptor.method == "POST"
    assert descriptor.data_type == "json"
    assert descriptor.use_blob is True
    assert descriptor.referrer_policy == "no-referrer"
    assert descriptor.has_body
    assert not descriptor.is_read


def test_method_defaults_to_get() -> None:
    descriptor = RequestDescriptor(url="http://a.com/foo")

    assert descriptor.method == "GET"
    assert descriptor.is_read
    assert repr(descriptor) == "<RequestDescriptor GET http://a.com/foo>"


@pytest.mark.parametrize("options", [{"url": "http://a.com", "type": "FETCH"}, {"url": "  "}, {}])
def test_invalid_descriptors_are_rejected(options) -> None:
    with pytest.raises(ValidationError):
        RequestDescriptor.model_validate(options)


def test_unknown_options_are_ignored() -> None:
    descriptor = RequestDescriptor.model_validate(
        {"url": "http://a.com/foo", "processData": False, "timeout": 10}
    )

    assert not hasattr(descriptor, "processData")


def test_descriptor_is_frozen() -> None:
    descriptor = RequestDescriptor(url="http://a.com/foo")

    with pytest.raises(ValidationError):
        descriptor.url = "http://b.com"


def test_multipart_form_keeps_order_and_renders_files() -> None:
    form = MultipartForm()
    form.append("a", "1")
    form.append("file", Blob(b"data", "text/plain", "f.txt"))
    form.append("a", "2")

    assert len(form) == 3
    assert form.get("a") == "1"
    assert form.getlist("a") == ["1", "2"]
    assert form.to_httpx_files() == [
        ("a", (None, b"1", None)),
        ("file", ("f.txt", b"data", "text/plain")),
        ("a", (None, b"2", None)),
    ]
