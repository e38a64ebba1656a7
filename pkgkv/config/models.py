from typing import Literal

from pydantic import BaseModel, Field, model_validator

# Workers KV rejects bulk requests over 100 MiB. Staying at 100 MB leaves room
# for keys, per-entry JSON framing and metadata.
DEFAULT_MAX_BULK_PAYLOAD = 100_000_000
DEFAULT_MAX_FILE_SIZE = 25 * 1024 * 1024


class KVConfig(BaseModel):
    provider: Literal["cloudflare", "memory"] = "cloudflare"
    base_url: str = "https://api.cloudflare.com/client/v4"
    account_id_env: str = "WORKERS_KV_ACCOUNT_ID"
    api_token_env: str = "WORKERS_KV_API_TOKEN"
    timeout: float = 60.0


class NamespaceConfig(BaseModel):
    files: str = ""
    index: str = ""
    metadata: str = ""


class LimitsConfig(BaseModel):
    max_file_size: int = Field(default=DEFAULT_MAX_FILE_SIZE, gt=0)
    max_bulk_payload: int = Field(default=DEFAULT_MAX_BULK_PAYLOAD, gt=0)

    @model_validator(mode="after")
    def check_ceilings(self) -> "LimitsConfig":
        if self.max_file_size >= self.max_bulk_payload:
            raise ValueError(
                f"max_file_size ({self.max_file_size}) must be smaller than "
                f"max_bulk_payload ({self.max_bulk_payload})"
            )
        return self


class IngestConfig(BaseModel):
    max_workers: int = Field(default=8, ge=1)


class PkgKVConfig(BaseModel):
    kv: KVConfig = Field(default_factory=KVConfig)
    namespaces: NamespaceConfig = Field(default_factory=NamespaceConfig)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"

    @model_validator(mode="after")
    def check_namespaces(self) -> "PkgKVConfig":
        if self.kv.provider != "cloudflare":
            return self
        missing = [kind for kind, ns in self.namespaces.model_dump().items() if not ns.strip()]
        if missing:
            raise ValueError(
                f"namespace ID(s) required for the cloudflare provider: {', '.join(missing)}"
            )
        return self
