"""
Job gateways.

One JobGateway subclass per job kind. Every call runs the same gated
sequence, and the first failing step ends the call:

    preflight -> credential -> identity -> body -> ownership -> config
      -> in-progress status -> payload -> dispatch -> result

Anything that fails after the in-progress status was written is followed by
a best-effort ``failed`` write on the same resources before the error is
returned.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from notebook_backend.core.logging_config import get_logger
from notebook_backend.gateway.auth import CallerIdentity, IdentityVerifier, get_bearer_credential
from notebook_backend.gateway.dispatcher import DispatchOutcome, JobDispatcher
from notebook_backend.gateway.errors import (
    DispatchFailure,
    GatewayError,
    InvalidRequest,
    MethodNotAllowed,
    StoreError,
    UpstreamInvalidResponse,
)
from notebook_backend.gateway.ownership import NotebookRef, OwnershipRef, SourceRef, verify_ownership
from notebook_backend.gateway.payloads import (
    chat_message_payload,
    content_generation_payload,
    copied_text_payload,
    document_processing_payload,
    multi_website_payload,
)
from notebook_backend.gateway.schemas import (
    AdditionalSourcesRequest,
    ChatMessageRequest,
    ContentGenerationRequest,
    CopiedTextRequest,
    DocumentProcessingRequest,
    GeneratedContent,
    GeneratedOutput,
    GenerationStatus,
    JobKind,
    ProcessingStatus,
)
from notebook_backend.gateway.settings import GatewaySettings
from notebook_backend.gateway.status import StatusRecorder, StatusTarget
from notebook_backend.gateway.store import NOTEBOOKS, ResourceStore

logger = get_logger(__name__)

_MISSING_TYPES = {"missing", "string_too_short", "too_short"}


def _field_path(loc: tuple) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def describe_validation_error(exc: ValidationError) -> str:
    """Turn a pydantic error into a caller-facing message naming the fields."""
    missing: List[str] = []
    invalid: List[str] = []
    for err in exc.errors():
        loc = err["loc"]
        # tagged unions prefix the location with the tag, which is not a field
        if loc and loc[0] in (JobKind.MULTI_WEBSITE_INGESTION.value,
                              JobKind.COPIED_TEXT_INGESTION.value):
            loc = loc[1:]
        name = _field_path(loc)

        if err["type"] == "union_tag_not_found":
            missing.append("type")
        elif err["type"] == "union_tag_invalid":
            return f"Unsupported type: {err.get('ctx', {}).get('tag')}"
        elif err["type"] in _MISSING_TYPES or err.get("input", "") is None:
            missing.append(name)
        else:
            invalid.append(f"{name}: {err['msg']}" if name else err["msg"])

    if missing:
        return f"Missing required field(s): {', '.join(missing)}"
    return f"Invalid request: {'; '.join(invalid)}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobGateway:
    """
    Base gateway: authenticate, authorize, dispatch, record status.

    Subclasses set the class attributes and implement the job-specific hooks
    (ownership_ref, status_targets, build_payload, dispatch_error, on_success).
    """

    name: str = "job"
    request_model: Any = None
    endpoint_setting: str = ""
    in_progress_status: Optional[str] = None
    failed_status: Optional[str] = None

    def __init__(
        self,
        settings: GatewaySettings,
        verifier: IdentityVerifier,
        store: ResourceStore,
        dispatcher: JobDispatcher,
        recorder: StatusRecorder,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings
        self.verifier = verifier
        self.store = store
        self.dispatcher = dispatcher
        self.recorder = recorder
        self.clock = clock
        self._adapter = TypeAdapter(self.request_model)

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    async def handle(self, request: Request) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=self.settings.cors_headers)
        if request.method != "POST":
            return self.error_response(MethodNotAllowed())

        try:
            body = await self.process(request)
        except GatewayError as exc:
            return self.error_response(exc)
        except Exception:
            logger.exception(f"Error in {self.name}")
            return self.error_response(GatewayError("Internal server error"))

        return JSONResponse(body, headers=self.settings.cors_headers)

    def error_response(self, exc: GatewayError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{self.name} failed: {exc.message}")
        else:
            logger.info(f"{self.name} rejected ({exc.status_code}): {exc.message}")
        return JSONResponse(
            exc.to_dict(),
            status_code=exc.status_code,
            headers=self.settings.cors_headers,
        )

    async def process(self, request: Request) -> Dict[str, Any]:
        credential = get_bearer_credential(request)
        identity = await self.verifier.verify(credential)
        job = await self.parse(request)

        ref = self.ownership_ref(job)
        if ref is not None:
            await verify_ownership(self.store, ref, identity)

        endpoint, secret = self.settings.dispatch_target(self.endpoint_setting)

        logger.info(
            f"Processing {self.name} request for user {identity.user_id}",
            extra={"data": {"resourceId": ref.resource_id if ref else None}},
        )

        targets = await self.status_targets(job)
        if self.in_progress_status:
            await self.recorder.record_all(targets, self.in_progress_status)

        try:
            payload = await self.build_payload(job, identity)
            outcome = await self.dispatcher.dispatch(endpoint, secret, payload)
            if not outcome.success:
                raise self.dispatch_error(job, outcome)
            return await self.on_success(job, outcome)
        except Exception:
            if self.failed_status:
                await self.recorder.record_all(targets, self.failed_status)
            raise

    async def parse(self, request: Request) -> BaseModel:
        try:
            body = await request.json()
        except ValueError as e:
            raise InvalidRequest("Invalid JSON body") from e

        try:
            return self._adapter.validate_python(body)
        except ValidationError as e:
            raise InvalidRequest(describe_validation_error(e)) from e

    # -------------------------------------------------------------------------
    # Job-specific hooks
    # -------------------------------------------------------------------------

    def ownership_ref(self, job) -> Optional[OwnershipRef]:
        raise NotImplementedError

    async def status_targets(self, job) -> List[StatusTarget]:
        return []

    async def build_payload(self, job, identity: CallerIdentity) -> Dict[str, Any]:
        raise NotImplementedError

    def dispatch_error(self, job, outcome: DispatchOutcome) -> GatewayError:
        return DispatchFailure(
            "Webhook request failed",
            details=outcome.body_text or outcome.error,
        )

    async def on_success(self, job, outcome: DispatchOutcome) -> Dict[str, Any]:
        return {"success": True, "data": outcome.data()}


class DocumentProcessingGateway(JobGateway):
    """POST process-document: hand an uploaded file to the document processor."""

    name = "process-document"
    request_model = DocumentProcessingRequest
    endpoint_setting = "document_processing_url"
    in_progress_status = ProcessingStatus.PROCESSING.value
    failed_status = ProcessingStatus.FAILED.value

    def ownership_ref(self, job: DocumentProcessingRequest) -> OwnershipRef:
        return SourceRef(job.source_id)

    async def status_targets(self, job: DocumentProcessingRequest) -> List[StatusTarget]:
        return [StatusTarget.source(job.source_id)]

    async def build_payload(self, job, identity):
        return document_processing_payload(job, self.settings)

    def dispatch_error(self, job, outcome):
        return DispatchFailure(
            "Document processing failed",
            details=outcome.body_text or outcome.error,
        )

    async def on_success(self, job, outcome):
        return {
            "success": True,
            "message": "Document processing initiated",
            "result": outcome.data(),
        }


class AdditionalSourcesGateway(JobGateway):
    """POST process-additional-sources: websites or copied text for a notebook."""

    name = "process-additional-sources"
    request_model = AdditionalSourcesRequest
    endpoint_setting = "additional_sources_url"
    failed_status = ProcessingStatus.FAILED.value

    def ownership_ref(self, job) -> OwnershipRef:
        return NotebookRef(job.notebook_id)

    async def status_targets(self, job) -> List[StatusTarget]:
        """Listed sources that belong to the verified notebook.

        Ids outside the notebook are dropped before any status is written.
        """
        listed = job.source_ids[:1] if isinstance(job, CopiedTextRequest) else job.source_ids
        try:
            owned = await self.store.get_notebook_source_ids(job.notebook_id)
        except StoreError as e:
            logger.warning(f"Source lookup for notebook {job.notebook_id} failed: {e}")
            return []

        foreign = [source_id for source_id in listed if source_id not in owned]
        if foreign:
            logger.warning(
                f"Ignoring sources outside notebook {job.notebook_id}",
                extra={"data": {"sourceIds": foreign}},
            )
        return [StatusTarget.source(source_id) for source_id in listed if source_id in owned]

    async def build_payload(self, job, identity):
        if isinstance(job, CopiedTextRequest):
            return copied_text_payload(job)
        return multi_website_payload(job)

    def dispatch_error(self, job, outcome):
        if outcome.network_failure:
            return DispatchFailure(f"Webhook request failed: {outcome.error}")
        return DispatchFailure(
            f"Webhook request failed: {outcome.status_code} - {outcome.body_text}"
        )

    async def on_success(self, job, outcome):
        return {
            "success": True,
            "message": f"{job.type} data sent to webhook successfully",
            "webhookResponse": outcome.body_text,
        }


class ContentGenerationGateway(JobGateway):
    """POST generate-notebook-content: title, summary, icon and questions."""

    name = "generate-notebook-content"
    request_model = ContentGenerationRequest
    endpoint_setting = "notebook_generation_url"
    in_progress_status = GenerationStatus.GENERATING.value
    failed_status = GenerationStatus.FAILED.value

    def ownership_ref(self, job: ContentGenerationRequest) -> OwnershipRef:
        return NotebookRef(job.notebook_id)

    async def status_targets(self, job: ContentGenerationRequest) -> List[StatusTarget]:
        return [StatusTarget.notebook(job.notebook_id)]

    async def build_payload(self, job: ContentGenerationRequest, identity):
        stored_content = None
        if not job.file_path:
            try:
                stored_content = await self.store.get_notebook_content(job.notebook_id)
            except StoreError as e:
                logger.warning(f"No stored content for notebook {job.notebook_id}: {e}")
        return content_generation_payload(job, self.settings, stored_content)

    def dispatch_error(self, job, outcome):
        return DispatchFailure(
            "Failed to generate content from web service",
            details=outcome.body_text or outcome.error,
        )

    def parse_generated(self, outcome: DispatchOutcome) -> GeneratedContent:
        try:
            body = outcome.json()
        except ValueError:
            body = None

        output = body.get("output") if isinstance(body, dict) else None
        if not isinstance(output, dict):
            logger.error(f"Unexpected response format: {outcome.body_text[:1000]}")
            raise UpstreamInvalidResponse("Invalid response format from web service")

        try:
            generated = GeneratedOutput.model_validate(output)
        except ValidationError as e:
            raise UpstreamInvalidResponse("Invalid response format from web service") from e

        if not generated.title:
            logger.error("No title returned from web service")
            raise UpstreamInvalidResponse("No title in response from web service")

        return GeneratedContent(
            title=generated.title,
            description=generated.summary or None,
            icon=generated.notebook_icon or self.settings.default_icon,
            color=generated.background_color or self.settings.default_color,
            example_questions=generated.example_questions or [],
        )

    async def on_success(self, job: ContentGenerationRequest, outcome):
        content = self.parse_generated(outcome)

        try:
            await self.store.update(NOTEBOOKS, job.notebook_id, {
                **content.model_dump(),
                "generation_status": GenerationStatus.COMPLETED.value,
            })
        except StoreError as e:
            logger.error(f"Notebook update error: {e}")
            raise GatewayError("Failed to update notebook") from e

        logger.info(f"Generated content stored for notebook {job.notebook_id}")
        return {
            "success": True,
            "title": content.title,
            "description": content.description,
            "icon": content.icon,
            "color": content.color,
            "exampleQuestions": content.example_questions,
            "message": "Notebook content generated successfully",
        }


class ChatRelayGateway(JobGateway):
    """
    POST send-chat-message: forward a message to the chat processor.

    There is no ownership check on the session. The caller's verified id is
    forwarded as ``user_id`` and the processor decides what the session may
    see.
    """

    name = "send-chat-message"
    request_model = ChatMessageRequest
    endpoint_setting = "chat_url"

    def ownership_ref(self, job) -> None:
        return None

    async def build_payload(self, job: ChatMessageRequest, identity: CallerIdentity):
        return chat_message_payload(job, identity.user_id, self.clock())

    def dispatch_error(self, job, outcome):
        if outcome.network_failure:
            return DispatchFailure(
                "Failed to send message to webhook", details=outcome.error
            )
        return DispatchFailure(f"Webhook responded with status: {outcome.status_code}")
