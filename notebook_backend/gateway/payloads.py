"""
Outbound job payloads.

Pure functions: each maps a validated job request (plus settings-derived
URLs) to the exact JSON object the processor expects. No I/O, and the
shared secret never appears here since it travels only as a header.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from notebook_backend.gateway.schemas import (
    ChatMessageRequest,
    ContentGenerationRequest,
    CopiedTextRequest,
    DocumentProcessingRequest,
    MultiWebsiteRequest,
)
from notebook_backend.gateway.settings import GatewaySettings


def truncate_content(content: str, max_length: int) -> str:
    """Cap content at ``max_length`` characters. Idempotent.

    Length is counted in code points. A JavaScript ``substring`` counts
    UTF-16 code units, so text with characters outside the BMP (emoji,
    some CJK) keeps more characters here than a JavaScript cut would.
    """
    return content[:max_length]


def format_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def document_processing_payload(
    request: DocumentProcessingRequest, settings: GatewaySettings
) -> Dict[str, Any]:
    base_url = settings.base_url
    return {
        "source_id": request.source_id,
        "file_url": (
            f"{base_url}/storage/v1/object/public/"
            f"{settings.public_bucket}/{request.file_path}"
        ),
        "file_path": request.file_path,
        "source_type": request.source_type,
        "callback_url": f"{base_url}/functions/v1/{settings.callback_function}",
    }


def multi_website_payload(request: MultiWebsiteRequest) -> Dict[str, Any]:
    # urls and sourceIds are forwarded as given, lengths are not reconciled
    return {
        "type": "multiple-websites",
        "notebookId": request.notebook_id,
        "urls": list(request.urls),
        "sourceIds": list(request.source_ids),
        "timestamp": request.timestamp,
    }


def copied_text_payload(request: CopiedTextRequest) -> Dict[str, Any]:
    return {
        "type": "copied-text",
        "notebookId": request.notebook_id,
        "title": request.title,
        "content": request.content,
        "sourceId": request.source_ids[0],
        "timestamp": request.timestamp,
    }


def content_generation_payload(
    request: ContentGenerationRequest,
    settings: GatewaySettings,
    stored_content: Optional[str] = None,
) -> Dict[str, Any]:
    """File sources and URLs send ``filePath``; text sources send their content."""
    payload: Dict[str, Any] = {"sourceType": request.source_type}
    if request.file_path:
        payload["filePath"] = request.file_path
    elif stored_content:
        payload["content"] = truncate_content(stored_content, settings.content_max_length)
    return payload


def chat_message_payload(
    request: ChatMessageRequest, user_id: str, sent_at: datetime
) -> Dict[str, Any]:
    """``user_id`` is always the verified caller, never a body field."""
    return {
        "session_id": request.session_id,
        "message": request.message,
        "user_id": user_id,
        "timestamp": format_timestamp(sent_at),
    }
