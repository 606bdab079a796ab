"""Unit tests for request validation and its caller-facing messages."""

import pytest
from pydantic import TypeAdapter, ValidationError

from notebook_backend.gateway.handlers import describe_validation_error
from notebook_backend.gateway.schemas import (
    AdditionalSourcesRequest,
    ChatMessageRequest,
    CopiedTextRequest,
    DocumentProcessingRequest,
    MultiWebsiteRequest,
)


def _message(model, body) -> str:
    with pytest.raises(ValidationError) as exc_info:
        TypeAdapter(model).validate_python(body)
    return describe_validation_error(exc_info.value)


def test_missing_fields_are_named():
    message = _message(DocumentProcessingRequest, {"sourceId": "s1"})

    assert message == "Missing required field(s): filePath, sourceType"


def test_empty_and_null_values_count_as_missing():
    message = _message(
        DocumentProcessingRequest,
        {"sourceId": "", "filePath": None, "sourceType": "pdf"},
    )

    assert message == "Missing required field(s): sourceId, filePath"


def test_additional_sources_dispatches_on_type():
    adapter = TypeAdapter(AdditionalSourcesRequest)

    websites = adapter.validate_python({
        "type": "multiple-websites",
        "notebookId": "nb-1",
        "urls": ["https://a.example"],
        "sourceIds": ["s-a"],
        "timestamp": "t",
    })
    text = adapter.validate_python({
        "type": "copied-text",
        "notebookId": "nb-1",
        "title": "T",
        "content": "C",
        "sourceIds": ["s-t"],
        "timestamp": "t",
    })

    assert isinstance(websites, MultiWebsiteRequest)
    assert isinstance(text, CopiedTextRequest)


def test_additional_sources_missing_fields_drop_the_tag_from_the_path():
    message = _message(AdditionalSourcesRequest, {"type": "copied-text", "notebookId": "nb-1"})

    assert message == "Missing required field(s): title, content, sourceIds, timestamp"


def test_copied_text_requires_a_source_id():
    message = _message(AdditionalSourcesRequest, {
        "type": "copied-text",
        "notebookId": "nb-1",
        "title": "T",
        "content": "C",
        "sourceIds": [],
        "timestamp": "t",
    })

    assert message == "Missing required field(s): sourceIds"


def test_unknown_type_is_rejected():
    message = _message(AdditionalSourcesRequest, {"type": "youtube", "notebookId": "nb-1"})

    assert message == "Unsupported type: youtube"


def test_missing_type_is_named():
    message = _message(AdditionalSourcesRequest, {"notebookId": "nb-1"})

    assert message == "Missing required field(s): type"


def test_wrong_types_are_reported_as_invalid():
    message = _message(ChatMessageRequest, {"session_id": "s", "message": ["not", "text"]})

    assert message.startswith("Invalid request: message:")


def test_identity_fields_in_body_are_dropped():
    request = ChatMessageRequest.model_validate(
        {"session_id": "s", "message": "m", "user_id": "attacker"}
    )

    assert not hasattr(request, "user_id")
    assert "user_id" not in request.model_dump()
