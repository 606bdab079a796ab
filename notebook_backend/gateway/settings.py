"""
Gateway settings.

Built once at process start from notebook.toml and the environment, then
passed explicitly into every gateway. Secret and endpoint values may be
absent here; they are checked when a request needs them so that a missing
value surfaces as a Misconfigured error instead of a silent default.
"""

from dataclasses import dataclass, fields
from typing import Dict, Optional, Tuple

from notebook_backend.core.config import get, get_env
from notebook_backend.gateway.errors import Misconfigured

# setting name -> environment variable
ENV_SETTINGS = {
    "store_url": "SUPABASE_URL",
    "anon_key": "SUPABASE_ANON_KEY",
    "service_role_key": "SUPABASE_SERVICE_ROLE_KEY",
    "dispatch_secret": "NOTEBOOK_GENERATION_AUTH",
    "document_processing_url": "DOCUMENT_PROCESSING_WEBHOOK_URL",
    "additional_sources_url": "ADDITIONAL_SOURCES_WEBHOOK_URL",
    "notebook_generation_url": "NOTEBOOK_GENERATION_URL",
    "chat_url": "NOTEBOOK_CHAT_URL",
}


@dataclass(frozen=True)
class GatewaySettings:
    """Configuration for all gateways in one process."""

    store_url: Optional[str] = None
    anon_key: Optional[str] = None
    service_role_key: Optional[str] = None
    dispatch_secret: Optional[str] = None
    document_processing_url: Optional[str] = None
    additional_sources_url: Optional[str] = None
    notebook_generation_url: Optional[str] = None
    chat_url: Optional[str] = None

    dispatch_timeout: float = 30.0
    content_max_length: int = 5000
    public_bucket: str = "sources"
    callback_function: str = "process-document-callback"
    default_icon: str = "📝"
    default_color: str = "bg-gray-100"
    cors_allow_origin: str = "*"
    cors_allow_headers: str = "authorization, x-client-info, apikey, content-type"

    @classmethod
    def load(cls) -> "GatewaySettings":
        """Read notebook.toml and the environment (including .env)."""
        return cls(
            **{name: get_env(env) for name, env in ENV_SETTINGS.items()},
            dispatch_timeout=float(get("dispatch", "timeout_seconds")),
            content_max_length=int(get("dispatch", "content_max_length")),
            public_bucket=get("storage", "public_bucket"),
            callback_function=get("storage", "callback_function"),
            default_icon=get("content", "default_icon"),
            default_color=get("content", "default_color"),
            cors_allow_origin=get("cors", "allow_origin"),
            cors_allow_headers=get("cors", "allow_headers"),
        )

    def require(self, *names: str) -> Tuple[str, ...]:
        """Return the named values, raising Misconfigured if any is unset."""
        missing = tuple(ENV_SETTINGS.get(n, n) for n in names if not getattr(self, n))
        if missing:
            raise Misconfigured(missing)
        return tuple(getattr(self, n) for n in names)

    def dispatch_target(self, endpoint_setting: str) -> Tuple[str, str]:
        """(endpoint URL, shared secret) for one processor."""
        return self.require(endpoint_setting, "dispatch_secret")

    def configured(self) -> Dict[str, bool]:
        """Map each environment-backed setting to whether it is configured."""
        return {ENV_SETTINGS[f.name]: bool(getattr(self, f.name))
                for f in fields(self) if f.name in ENV_SETTINGS}

    @property
    def cors_headers(self) -> Dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.cors_allow_origin,
            "Access-Control-Allow-Headers": self.cors_allow_headers,
        }

    @property
    def base_url(self) -> str:
        """Store URL without a trailing slash (raises Misconfigured if unset)."""
        (url,) = self.require("store_url")
        return url.rstrip("/")
