"""
Pydantic schemas for the notebook gateway.

Defines the inbound job request models (one per job kind), the status
enumerations stored on notebooks and sources, and the generated-content
shape returned by the content processor.

Request models have no field that could assert an identity:
unknown keys such as ``user_id`` are dropped during validation, so the
caller identity can only come from the verified credential.
"""

from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobKind(str, Enum):
    """Job kinds handled by the gateway."""
    DOCUMENT_PROCESSING = "document-processing"
    MULTI_WEBSITE_INGESTION = "multiple-websites"
    COPIED_TEXT_INGESTION = "copied-text"
    CONTENT_GENERATION = "content-generation"
    CHAT_MESSAGE = "chat-message"


class GenerationStatus(str, Enum):
    """notebooks.generation_status"""
    IDLE = "idle"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class ProcessingStatus(str, Enum):
    """sources.processing_status"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class _JobRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", str_min_length=1)


# =============================================================================
# Inbound job requests
# =============================================================================

class DocumentProcessingRequest(_JobRequest):
    """Process an uploaded file belonging to a source."""
    source_id: str = Field(..., alias="sourceId")
    file_path: str = Field(..., alias="filePath")
    source_type: str = Field(..., alias="sourceType")


class MultiWebsiteRequest(_JobRequest):
    """Ingest several websites into a notebook.

    ``urls`` and ``source_ids`` are expected to correspond positionally but
    their lengths are not compared.
    """
    type: Literal["multiple-websites"]
    notebook_id: str = Field(..., alias="notebookId")
    urls: List[str]
    source_ids: List[str] = Field(..., alias="sourceIds")
    timestamp: str


class CopiedTextRequest(_JobRequest):
    """Ingest pasted text into a notebook as a single source."""
    type: Literal["copied-text"]
    notebook_id: str = Field(..., alias="notebookId")
    title: str
    content: str
    source_ids: List[str] = Field(..., alias="sourceIds", min_length=1)
    timestamp: str


AdditionalSourcesRequest = Annotated[
    Union[MultiWebsiteRequest, CopiedTextRequest],
    Field(discriminator="type"),
]


class ContentGenerationRequest(_JobRequest):
    """Generate title, summary and example questions for a notebook."""
    notebook_id: str = Field(..., alias="notebookId")
    source_type: str = Field(..., alias="sourceType")
    file_path: Optional[str] = Field(None, alias="filePath")

    @field_validator("file_path", mode="before")
    @classmethod
    def blank_path_means_stored_content(cls, v):
        return v or None


class ChatMessageRequest(_JobRequest):
    """Relay a chat message to the chat processor."""
    session_id: str
    message: str


# =============================================================================
# Generated content
# =============================================================================

class GeneratedOutput(BaseModel):
    """The ``output`` object returned by the content processor."""
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    summary: Optional[str] = None
    notebook_icon: Optional[str] = None
    background_color: Optional[str] = None
    example_questions: Optional[List[Any]] = None


class GeneratedContent(BaseModel):
    """Generated fields as persisted on the notebook."""
    title: str
    description: Optional[str] = None
    icon: str
    color: str
    example_questions: List[Any] = Field(default_factory=list)
