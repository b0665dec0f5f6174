"""Pydantic models for edge rewriting (config, request signals, image sources)."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Images, video, audio and HLS playlists/segments
DEFAULT_MEDIA_EXTENSIONS: tuple[str, ...] = (
    "jpg",
    "jpeg",
    "png",
    "gif",
    "webp",
    "avif",
    "svg",
    "bmp",
    "tiff",
    "ico",
    "heic",
    "heif",
    "mp4",
    "m4v",
    "webm",
    "ogv",
    "mov",
    "mkv",
    "mp3",
    "ogg",
    "wav",
    "m4a",
    "flac",
    "aac",
    "weba",
    "m3u8",
    "ts",
)


class RewriteConfig(BaseModel):
    """Read-only rewriting configuration handed to each engine."""

    model_config = ConfigDict(frozen=True)

    edge_domain: str = ""
    allowed_origin_domains: list[str] = Field(default_factory=list)
    enabled: bool = False
    media_extensions: list[str] = Field(default_factory=lambda: list(DEFAULT_MEDIA_EXTENSIONS))

    @field_validator("allowed_origin_domains")
    @classmethod
    def _dedupe_domains(cls, value: list[str]) -> list[str]:
        seen: dict[str, None] = {}
        for domain in value:
            domain = domain.strip().lower()
            if domain:
                seen.setdefault(domain, None)
        return list(seen)

    @field_validator("media_extensions")
    @classmethod
    def _normalize_extensions(cls, value: list[str]) -> list[str]:
        return [ext.strip().lower().lstrip(".") for ext in value if ext.strip()]

    @property
    def is_active(self) -> bool:
        """Check if rewriting should run at all."""
        return self.enabled and bool(self.edge_domain)


class ContextSignals(BaseModel):
    """Ambient flags describing the request an engine is serving."""

    model_config = ConfigDict(frozen=True)

    is_admin: bool = False
    is_ajax: bool = False
    is_rest: bool = False
    is_cron: bool = False
    is_cli: bool = False
    is_xmlrpc: bool = False
    is_autosave: bool = False
    is_installing: bool = False
    is_authenticated: bool = False


class ImageSource(BaseModel):
    """Primary image descriptor produced when the host builds an image."""

    url: str
    width: int | None = None
    height: int | None = None
    is_intermediate: bool = False


class SrcsetSource(BaseModel):
    """One candidate of a responsive ``srcset`` list."""

    url: str
    descriptor: Literal["w", "x"] = "w"
    value: float = 0

    def to_candidate(self) -> str:
        """Render as a ``srcset`` candidate string (e.g. ``a.jpg 300w``)."""
        value = int(self.value) if float(self.value).is_integer() else self.value
        return f"{self.url} {value}{self.descriptor}"
