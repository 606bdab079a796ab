"""Unit tests for the outbound payload builders."""

import json
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from notebook_backend.gateway.payloads import (
    chat_message_payload,
    content_generation_payload,
    copied_text_payload,
    document_processing_payload,
    format_timestamp,
    multi_website_payload,
    truncate_content,
)
from notebook_backend.gateway.schemas import (
    ChatMessageRequest,
    ContentGenerationRequest,
    CopiedTextRequest,
    DocumentProcessingRequest,
    MultiWebsiteRequest,
)


def test_document_payload_matches_processor_contract(settings):
    """Document payload derives file and callback URLs from the store URL."""
    request = DocumentProcessingRequest.model_validate(
        {"sourceId": "s1", "filePath": "docs/a.pdf", "sourceType": "pdf"}
    )

    payload = document_processing_payload(request, settings)

    assert payload == {
        "source_id": "s1",
        "file_url": "https://store.test/storage/v1/object/public/sources/docs/a.pdf",
        "file_path": "docs/a.pdf",
        "source_type": "pdf",
        "callback_url": "https://store.test/functions/v1/process-document-callback",
    }


def test_document_payload_strips_trailing_slash(settings):
    request = DocumentProcessingRequest.model_validate(
        {"sourceId": "s1", "filePath": "a.pdf", "sourceType": "pdf"}
    )
    payload = document_processing_payload(
        request, replace(settings, store_url="https://store.test/")
    )

    assert payload["file_url"] == "https://store.test/storage/v1/object/public/sources/a.pdf"


def test_payloads_never_contain_the_dispatch_secret(settings):
    request = DocumentProcessingRequest.model_validate(
        {"sourceId": "s1", "filePath": "docs/a.pdf", "sourceType": "pdf"}
    )
    serialized = json.dumps(document_processing_payload(request, settings))

    assert settings.dispatch_secret not in serialized
    assert settings.service_role_key not in serialized


def test_builders_are_deterministic(settings):
    """Same request and settings give byte-identical payloads."""
    request = MultiWebsiteRequest.model_validate({
        "type": "multiple-websites",
        "notebookId": "nb-1",
        "urls": ["https://a.example", "https://b.example"],
        "sourceIds": ["s-a", "s-b"],
        "timestamp": "2024-05-01T10:00:00Z",
    })

    first = json.dumps(multi_website_payload(request)).encode()
    second = json.dumps(multi_website_payload(request)).encode()

    assert first == second


def test_multi_website_payload_passes_mismatched_lists_through():
    """urls and sourceIds are forwarded unchanged even when lengths differ."""
    request = MultiWebsiteRequest.model_validate({
        "type": "multiple-websites",
        "notebookId": "nb-1",
        "urls": ["https://a.example", "https://b.example", "https://c.example"],
        "sourceIds": ["s-a"],
        "timestamp": "2024-05-01T10:00:00Z",
    })

    payload = multi_website_payload(request)

    assert payload == {
        "type": "multiple-websites",
        "notebookId": "nb-1",
        "urls": ["https://a.example", "https://b.example", "https://c.example"],
        "sourceIds": ["s-a"],
        "timestamp": "2024-05-01T10:00:00Z",
    }


def test_copied_text_payload_uses_first_source_id():
    request = CopiedTextRequest.model_validate({
        "type": "copied-text",
        "notebookId": "nb-1",
        "title": "Notes",
        "content": "Some pasted text",
        "sourceIds": ["s-text", "s-ignored"],
        "timestamp": "2024-05-01T10:00:00Z",
    })

    assert copied_text_payload(request) == {
        "type": "copied-text",
        "notebookId": "nb-1",
        "title": "Notes",
        "content": "Some pasted text",
        "sourceId": "s-text",
        "timestamp": "2024-05-01T10:00:00Z",
    }


@pytest.mark.parametrize("length, expected", [(0, 0), (4999, 4999), (5000, 5000), (5001, 5000), (12000, 5000)])
def test_truncate_content_caps_at_limit(length, expected):
    content = "x" * length
    truncated = truncate_content(content, 5000)

    assert len(truncated) == expected
    assert truncate_content(truncated, 5000) == truncated


def test_truncate_content_keeps_short_content_unchanged():
    assert truncate_content("short", 5000) == "short"


def test_truncate_content_counts_code_points():
    """An emoji counts as one character, not two UTF-16 units."""
    assert truncate_content("😀" * 4 + "abc", 5) == "😀😀😀😀a"


def test_generation_payload_prefers_file_path(settings):
    request = ContentGenerationRequest.model_validate(
        {"notebookId": "nb-1", "sourceType": "pdf", "filePath": "docs/a.pdf"}
    )

    payload = content_generation_payload(request, settings, stored_content="ignored")

    assert payload == {"sourceType": "pdf", "filePath": "docs/a.pdf"}


def test_generation_payload_truncates_stored_content(settings):
    request = ContentGenerationRequest.model_validate(
        {"notebookId": "nb-1", "sourceType": "text"}
    )

    payload = content_generation_payload(request, settings, stored_content="y" * 6000)

    assert payload == {"sourceType": "text", "content": "y" * 5000}


def test_generation_payload_without_file_or_content(settings):
    request = ContentGenerationRequest.model_validate(
        {"notebookId": "nb-1", "sourceType": "text", "filePath": ""}
    )

    assert content_generation_payload(request, settings, None) == {"sourceType": "text"}


def test_chat_payload_uses_verified_user_and_server_clock():
    request = ChatMessageRequest.model_validate(
        {"session_id": "sess-1", "message": "hello", "user_id": "someone-else"}
    )
    sent_at = datetime(2024, 5, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)

    payload = chat_message_payload(request, "user-alice", sent_at)

    assert payload == {
        "session_id": "sess-1",
        "message": "hello",
        "user_id": "user-alice",
        "timestamp": "2024-05-01T10:00:00.123Z",
    }


def test_format_timestamp_treats_naive_as_utc():
    assert format_timestamp(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05.000Z"
