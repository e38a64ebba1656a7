"""Config resolution for pkgkv: file discovery, ``${VAR}`` expansion, validation."""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import PkgKVConfig

# ${NAME} or ${NAME:-fallback}
_ENV_REF = re.compile(r"\$\{(?P<name>\w+)(?::-(?P<default>[^}]*))?\}")


def config_search_path(cli_path: str | None = None) -> list[Path]:
    """Candidate config files, highest precedence first.

    An explicit ``--config`` path is the only candidate and must exist.
    """
    if cli_path:
        path = Path(cli_path)
        if not path.is_file():
            raise ValueError(f"Config file not found: {path}")
        return [path]
    return [Path("pkgkv.yaml"), Path.home() / ".pkgkv" / "config.yaml"]


def load_config(cli_path: str | None = None) -> PkgKVConfig:
    """Resolve, expand and validate the pkgkv configuration.

    The first existing, non-empty candidate from :func:`config_search_path`
    wins. Built-in defaults apply only when no file is found, and must still
    pass validation: the cloudflare provider needs namespace IDs.
    """
    candidates = config_search_path(cli_path)
    for path in candidates:
        if not path.is_file():
            continue
        try:
            raw = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        if raw is None:
            continue
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid config in {path}: top level must be a mapping")
        try:
            return PkgKVConfig.model_validate(expand_env_vars(raw, source=path))
        except ValidationError as e:
            raise ValueError(f"Invalid config in {path}: {e}") from e

    try:
        return PkgKVConfig()
    except ValidationError as e:
        searched = ", ".join(str(p) for p in candidates)
        raise ValueError(f"No usable config file (searched {searched}): {e}") from e


def expand_env_vars(obj: object, source: Path | None = None) -> object:
    """Substitute ``${VAR}`` references in every string of a parsed config.

    ``${VAR:-fallback}`` uses *fallback* when VAR is unset. Any other unset
    variable is an error naming every missing variable, so a missing
    namespace ID never becomes an empty string.
    """
    missing: list[str] = []

    def substitute(match: re.Match) -> str:
        name, default = match.group("name"), match.group("default")
        value = os.environ.get(name, default)
        if value is None:
            missing.append(name)
            return ""
        return value

    def walk(node: object) -> object:
        if isinstance(node, str):
            return _ENV_REF.sub(substitute, node)
        if isinstance(node, dict):
            return {key: walk(value) for key, value in node.items()}
        if isinstance(node, list):
            return [walk(value) for value in node]
        return node

    expanded = walk(obj)
    if missing:
        where = f" in {source}" if source else ""
        names = ", ".join(sorted(set(missing)))
        raise ValueError(f"Unset environment variable(s){where}: {names}")
    return expanded


# Default YAML template for `pkgkv config init`
DEFAULT_CONFIG_TEMPLATE = """\
# pkgkv.yaml

# Key-value store
kv:
  provider: "cloudflare"         # cloudflare | memory
  base_url: "https://api.cloudflare.com/client/v4"
  account_id_env: "WORKERS_KV_ACCOUNT_ID"
  api_token_env: "WORKERS_KV_API_TOKEN"
  timeout: 60

# Namespace IDs for each document kind
namespaces:
  files: "${WORKERS_KV_FILES_NAMESPACE_ID}"
  index: "${WORKERS_KV_INDEX_NAMESPACE_ID}"
  metadata: "${WORKERS_KV_METADATA_NAMESPACE_ID}"

# Request limits (bytes, measured after base64 encoding)
limits:
  max_file_size: 26214400
  max_bulk_payload: 100000000

# Ingestion
ingest:
  max_workers: 8

# Logging
log_level: "info"                # debug | info | warn | error
log_format: "text"               # text | json
"""
